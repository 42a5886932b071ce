#!/usr/bin/env python3
"""twitch base launch code"""

import asyncio
import contextlib
import logging
import signal
import sys
import threading
from typing import Any, TextIO

import smplstt.config
import smplstt.pubsub
import smplstt.twitch.service
import smplstt.utils
from smplstt.twitch.constants import TOPIC_TEXT_SOURCE
from smplstt.types import TextEvent, TextEventType


class TwitchLaunch:  # pylint: disable=too-many-instance-attributes
    """run the twitch service until told to stop"""

    def __init__(
        self,
        config: smplstt.config.ConfigFile | None = None,
        stopevent: asyncio.Event | None = None,
        textin: TextIO | None = None,
        interactive_login: bool = False,
    ):
        self.config = config
        self.stopevent = stopevent or asyncio.Event()
        self.textin = textin
        self.interactive_login = interactive_login
        self.pubsub = smplstt.pubsub.PubSub()
        self.service: smplstt.twitch.service.TwitchService | None = None
        self.loop: asyncio.AbstractEventLoop | None = None
        self.tasks: set[asyncio.Task[Any]] = set()

    async def bootstrap(self) -> None:
        """log in and start the service"""
        self.service = smplstt.twitch.service.TwitchService(
            config=self.config, pubsub=self.pubsub
        )
        await self.service.init()
        if self.interactive_login and not self.service.context.identity:
            await self.service.login()
        if self.textin:
            smplstt.utils.create_tracked_task(self.tasks, self.read_text(), name="text_input")

    def _pump_text(self, loop: asyncio.AbstractEventLoop, queue: asyncio.Queue) -> None:
        """blocking reader, runs on a daemon thread so exit never waits on it"""
        try:
            for line in iter(self.textin.readline, ""):
                loop.call_soon_threadsafe(queue.put_nowait, line)
        except RuntimeError:
            # loop already closed
            return
        except (OSError, ValueError) as error:
            logging.debug("text input failed: %s", error)
        with contextlib.suppress(RuntimeError):
            loop.call_soon_threadsafe(queue.put_nowait, None)

    async def read_text(self) -> None:
        """every line on textin is a final transcript line"""
        queue: asyncio.Queue[str | None] = asyncio.Queue()
        threading.Thread(
            target=self._pump_text,
            args=(asyncio.get_running_loop(), queue),
            name="text_input",
            daemon=True,
        ).start()
        while not smplstt.utils.safe_stopevent_check(self.stopevent):
            line = await queue.get()
            if line is None:
                logging.debug("text input closed")
                return
            self.pubsub.publish(
                TOPIC_TEXT_SOURCE,
                TextEvent(value=line.strip(), type=TextEventType.FINAL, source="stt"),
            )

    async def _watch_for_exit(self) -> None:
        while not smplstt.utils.safe_stopevent_check(self.stopevent):
            await asyncio.sleep(1)
        await self.stop()

    def start(self) -> None:
        """start twitch support"""
        signal.signal(signal.SIGINT, self.forced_stop)
        try:
            if not self.loop:
                try:
                    self.loop = asyncio.get_running_loop()
                except RuntimeError:
                    self.loop = asyncio.new_event_loop()
                    asyncio.set_event_loop(self.loop)
            self.loop.create_task(self._run())
            self.loop.run_forever()
        except Exception:  # pylint: disable=broad-except
            logging.exception("Twitch support crashed")

    async def _run(self) -> None:
        smplstt.utils.create_tracked_task(self.tasks, self.bootstrap(), name="twitch_bootstrap")
        smplstt.utils.create_tracked_task(self.tasks, self._watch_for_exit(), name="twitch_exit")

    def forced_stop(self, signum, frame):  # pylint: disable=unused-argument
        """caught an int signal so tell the world to stop"""
        self.stopevent.set()

    async def stop(self) -> None:
        """stop the twitch support"""
        if self.service:
            await self.service.stop()
        for task in list(self.tasks):
            if task is not asyncio.current_task():
                task.cancel()
        if self.loop:
            self.loop.stop()
        logging.debug("twitch launch stopped")


def start(
    config: smplstt.config.ConfigFile,
    textin: TextIO | None = sys.stdin,
    interactive_login: bool = False,
) -> None:
    """blocking entry point"""
    logging.info("boot up")
    try:
        launch = TwitchLaunch(config=config, textin=textin, interactive_login=interactive_login)
        launch.start()
    except KeyboardInterrupt:
        logging.info("twitch interrupted")
    logging.info("shutting down twitch v%s", config.version)
