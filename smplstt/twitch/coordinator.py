#!/usr/bin/env python3
"""live and ad break polling for the twitch service"""

import asyncio
import logging
import time
from collections.abc import Callable, Coroutine
from typing import Any

import smplstt.pubsub
import smplstt.utils
from smplstt.twitch.api import AdScheduleProvider, StreamStatusProvider
from smplstt.twitch.constants import (
    AD_CHECK_INTERVAL,
    AD_GRACE_MS,
    LIVE_CHECK_INTERVAL,
    TOPIC_AD_ENDED,
    TOPIC_STREAM_ENDED,
)
from smplstt.types import AdScheduleRecord, ServiceNetworkState, TwitchContext


def is_ad_running(schedule: AdScheduleRecord, now_ms: float) -> bool:
    """an ad is running until duration plus a grace band after it started"""
    if not schedule.last_ad_at or schedule.duration <= 0:
        return False
    last_ad_ms = schedule.last_ad_at.timestamp() * 1000
    return now_ms < last_ad_ms + schedule.duration * 1000 + AD_GRACE_MS


class ConnectionStateCoordinator:  # pylint: disable=too-many-instance-attributes
    """owns the live and ad break states and the loops that poll them

    Every loop tick runs as its own task so a slow request never holds
    up the next tick.  Stopping a loop only prevents future ticks; a
    tick that already started still finishes, but its result is thrown
    away when the session was logged out or ad polling was stopped in
    the meantime.
    """

    def __init__(  # pylint: disable=too-many-arguments
        self,
        context: TwitchContext,
        streams: StreamStatusProvider,
        ads: AdScheduleProvider,
        pubsub: smplstt.pubsub.PubSub,
        live_interval: float = LIVE_CHECK_INTERVAL,
        ad_interval: float = AD_CHECK_INTERVAL,
        clock: Callable[[], float] = time.time,
    ):
        self.context = context
        self.streams = streams
        self.ads = ads
        self.pubsub = pubsub
        self.live_interval = live_interval
        self.ad_interval = ad_interval
        self.clock = clock
        self.live_task: asyncio.Task | None = None
        self.ad_task: asyncio.Task | None = None
        self.ad_generation = 0
        self.tasks: set[asyncio.Task] = set()

    @property
    def ad_polling(self) -> bool:
        """is the ad loop scheduled"""
        return self.ad_task is not None

    @property
    def live_polling(self) -> bool:
        """is the live loop scheduled"""
        return self.live_task is not None

    def _spawn(self, coro: Coroutine[Any, Any, None], name: str) -> asyncio.Task:
        return smplstt.utils.create_tracked_task(self.tasks, coro, name=name)

    async def _repeat(
        self, tick: Callable[[], Coroutine[Any, Any, None]], interval: float, name: str
    ):
        while True:
            await asyncio.sleep(interval)
            self._spawn(tick(), name=name)

    def _transition(self, field: str, new: ServiceNetworkState, topic: str) -> None:
        previous = getattr(self.context, field)
        setattr(self.context, field, new)
        if previous != new:
            logging.debug("%s: %s -> %s", field, previous.value, new.value)
        if (
            previous == ServiceNetworkState.CONNECTED
            and new == ServiceNetworkState.DISCONNECTED
        ):
            logging.info("publishing %s", topic)
            self.pubsub.publish(topic)

    def start_live_polling(self) -> None:
        """start the live status loop if it is not already running"""
        if self.live_task:
            return
        logging.debug("starting live polling every %ss", self.live_interval)
        self.live_task = self._spawn(
            self._repeat(self.check_live, self.live_interval, "check_live"),
            name="twitch_live_poll",
        )

    def stop_live_polling(self) -> None:
        """stop scheduling live checks"""
        if self.live_task:
            self.live_task.cancel()
            self.live_task = None

    async def check_live(self) -> None:
        """one live status poll"""
        identity = self.context.identity
        if not identity or not identity.login:
            self._transition(
                "live_state", ServiceNetworkState.DISCONNECTED, TOPIC_STREAM_ENDED
            )
            return

        generation = self.context.generation
        try:
            stream = await self.streams.get_stream_by_user_name(identity.login)
            state = (
                ServiceNetworkState.CONNECTED if stream else ServiceNetworkState.DISCONNECTED
            )
        except Exception as error:  # pylint: disable=broad-except
            logging.debug("live check failed: %s", error)
            state = ServiceNetworkState.DISCONNECTED

        if generation != self.context.generation:
            logging.debug("discarding live check from a previous session")
            return
        self._transition("live_state", state, TOPIC_STREAM_ENDED)

    def start_ad_polling(self) -> None:
        """check for ad breaks now and then on a fixed interval"""
        if self.ad_task:
            return
        logging.debug("starting ad polling every %ss", self.ad_interval)
        self._spawn(self.check_ad_status(), name="check_ad_status")
        self.ad_task = self._spawn(
            self._repeat(self.check_ad_status, self.ad_interval, "check_ad_status"),
            name="twitch_ad_poll",
        )

    def stop_ad_polling(self) -> None:
        """stop the ad loop and force the ad state off"""
        if self.ad_task:
            logging.debug("stopping ad polling")
            self.ad_task.cancel()
            self.ad_task = None
        self.ad_generation += 1
        self.context.ad_state = ServiceNetworkState.DISCONNECTED

    async def check_ad_status(self) -> None:
        """one ad schedule poll"""
        identity = self.context.identity
        if not identity or not self.context.credential:
            self._transition("ad_state", ServiceNetworkState.DISCONNECTED, TOPIC_AD_ENDED)
            return

        generation = (self.context.generation, self.ad_generation)
        try:
            schedule = await self.ads.get_ad_schedule(identity.id)
            running = is_ad_running(schedule, self.clock() * 1000)
            state = ServiceNetworkState.CONNECTED if running else ServiceNetworkState.DISCONNECTED
        except Exception as error:  # pylint: disable=broad-except
            logging.debug("ad check failed: %s", error)
            state = ServiceNetworkState.DISCONNECTED

        if generation != (self.context.generation, self.ad_generation):
            logging.debug("discarding stale ad check")
            return
        self._transition("ad_state", state, TOPIC_AD_ENDED)

    async def stop(self) -> None:
        """cancel both loops and anything still in flight"""
        self.stop_live_polling()
        self.stop_ad_polling()
        for task in list(self.tasks):
            task.cancel()
        if self.tasks:
            await asyncio.gather(*self.tasks, return_exceptions=True)
