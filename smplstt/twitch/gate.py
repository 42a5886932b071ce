#!/usr/bin/env python3
"""decide which captioner text gets mirrored into twitch chat"""

import logging
from typing import Protocol

from smplstt.twitch.constants import CHAT_TEXTFIELD
from smplstt.types import PostSettings, ServiceNetworkState, TextEvent, TextEventType


class ChatPoster(Protocol):  # pylint: disable=too-few-public-methods
    """anything that can put text into chat"""

    def post(self, text: str) -> None: ...


def should_post(
    event: TextEvent | None,
    settings: PostSettings,
    live_state: ServiceNetworkState,
    ad_state: ServiceNetworkState,
) -> bool:
    """is event allowed into chat given the settings and network states"""
    if settings["gate_on_live"] and live_state != ServiceNetworkState.CONNECTED:
        return False
    if settings["gate_on_ad"] and ad_state != ServiceNetworkState.CONNECTED:
        return False
    return bool(
        settings["posting_enabled"]
        and event
        and event.value
        and event.type == TextEventType.FINAL
    )


def should_post_input(
    event: TextEvent | None,
    settings: PostSettings,
    live_state: ServiceNetworkState,
    ad_state: ServiceNetworkState,
) -> bool:
    """same as should_post, but never echo text that came from twitch chat"""
    if event and event.textfield == CHAT_TEXTFIELD:
        return False
    return should_post(event, settings, live_state, ad_state)


def forward_if_allowed(  # pylint: disable=too-many-arguments
    chat: ChatPoster,
    event: TextEvent | None,
    settings: PostSettings,
    live_state: ServiceNetworkState,
    ad_state: ServiceNetworkState,
    from_input: bool = False,
) -> bool:
    """post event to chat when the gate lets it through"""
    check = should_post_input if from_input else should_post
    if not check(event, settings, live_state, ad_state):
        return False
    logging.debug("forwarding %d characters to chat", len(event.value))
    chat.post(event.value)
    return True
