#!/usr/bin/env python3
"""twitch emote sets for the caption renderer"""

import logging

from twitchAPI.twitch import Twitch  # pylint: disable=import-error


def emote_url(template: str, emote_id: str) -> str:
    """fill in the CDN url template for a static emote"""
    return (
        template.replace("{{id}}", emote_id)
        .replace("{{format}}", "static")
        .replace("{{theme_mode}}", "dark")
        .replace("{{scale}}", "1.0")
    )


class TwitchEmotes:
    """name to image url map of global and channel emotes"""

    def __init__(self):
        self.emotes: dict[str, str] = {}

    async def load_emotes(self, user_id: str, twitch: Twitch) -> None:
        """fetch global and channel emotes; failures leave what was loaded"""
        for label, call in (
            ("global", twitch.get_global_emotes),
            ("channel", lambda: twitch.get_channel_emotes(user_id)),
        ):
            try:
                response = await call()
            except Exception as error:  # pylint: disable=broad-except
                logging.error("loading %s emotes failed: %s", label, error)
                continue
            for emote in response.data:
                self.emotes[emote.name] = emote_url(response.template, emote.id)
        logging.debug("loaded %d emotes", len(self.emotes))

    def dispose(self) -> None:
        """forget everything"""
        self.emotes = {}
