#!/usr/bin/env python3
"""post captioner text into twitch chat"""

import asyncio
import contextlib
import logging
import textwrap
from collections.abc import Callable

from twitchAPI.chat import Chat, ChatEvent, ChatMessage  # pylint: disable=import-error
from twitchAPI.twitch import Twitch  # pylint: disable=import-error

from smplstt.twitch.constants import CHAT_TEXTFIELD, TWITCH_MESSAGE_LIMIT
from smplstt.types import TextEvent, TextEventType


class TwitchChatTransport:
    """a single chat channel connection with an ordered outbound queue"""

    def __init__(self, on_message: Callable[[TextEvent], None] | None = None):
        self.on_message = on_message
        self.chat: Chat | None = None
        self.channel: str | None = None
        self.queue: asyncio.Queue[str] = asyncio.Queue()
        self.sender: asyncio.Task | None = None

    def is_connected(self) -> bool:
        """is there a running chat connection"""
        return bool(self.chat and self.chat.is_connected())

    async def connect(self, channel: str, twitch: Twitch) -> None:
        """join channel using the authenticated twitch object"""
        self.disconnect()
        logging.info("connecting to twitch chat %s", channel)
        self.channel = channel
        self.chat = await Chat(twitch, initial_channel=[channel])
        self.chat.register_event(ChatEvent.MESSAGE, self.on_twitchchat_incoming_message)
        self.chat.start()
        self.sender = asyncio.get_running_loop().create_task(
            self._send_loop(), name="twitch_chat_sender"
        )

    async def on_twitchchat_incoming_message(self, msg: ChatMessage) -> None:
        """hand chat messages back to the captioner as input"""
        if not self.on_message or not msg.text:
            return
        self.on_message(
            TextEvent(
                value=msg.text,
                type=TextEventType.FINAL,
                source="twitch",
                textfield=CHAT_TEXTFIELD,
            )
        )

    @staticmethod
    def split_message(message: str, max_length: int = TWITCH_MESSAGE_LIMIT) -> list[str]:
        """break message on word boundaries to fit the chat limit"""
        if len(message) <= max_length:
            return [message]
        return textwrap.wrap(message, width=max_length, break_long_words=True)

    def post(self, text: str) -> None:
        """queue text for the channel"""
        if not self.chat:
            logging.debug("chat not connected, dropping message")
            return
        for part in self.split_message(text):
            self.queue.put_nowait(part)

    async def _send_loop(self) -> None:
        while True:
            part = await self.queue.get()
            if not self.chat or not self.channel:
                continue
            try:
                await self.chat.send_message(self.channel, part)
            except Exception as error:  # pylint: disable=broad-except
                logging.error("failed to send chat message: %s", error)

    def disconnect(self) -> None:
        """leave chat, drop anything not yet sent"""
        if self.sender:
            self.sender.cancel()
            self.sender = None
        if self.chat:
            try:
                self.chat.stop()
            except Exception as error:  # pylint: disable=broad-except
                logging.error("stopping chat failed: %s", error)
            logging.debug("chat stopped")
        self.chat = None
        self.channel = None
        while not self.queue.empty():
            with contextlib.suppress(asyncio.QueueEmpty):
                self.queue.get_nowait()

    def dispose(self) -> None:
        """disconnect and start over with an empty queue"""
        self.disconnect()
        self.queue = asyncio.Queue()
