#!/usr/bin/env python3
"""Twitch-related constants"""

import twitchAPI.helper
from twitchAPI.type import AuthScope

# OAuth and API endpoints
OAUTH_HOST = "https://id.twitch.tv"
AUTHORIZE_URL = f"{OAUTH_HOST}/oauth2/authorize"

AUTH_SCOPES: list[AuthScope] = [
    AuthScope.CHAT_READ,
    AuthScope.CHAT_EDIT,
    AuthScope.CHANNEL_READ_SUBSCRIPTIONS,
    AuthScope.CHANNEL_READ_ADS,
]
AUTH_SCOPE_STRINGS: list[str] = twitchAPI.helper.build_scope(AUTH_SCOPES).split()

# browser page posts this prefix followed by the access token
AUTH_MESSAGE_PREFIX = "smplstt_tw_auth:"
REDIRECT_PATH = "/oauth_twitch.html"
REDIRECT_PORT = 1420

# polling intervals in seconds
LIVE_CHECK_INTERVAL = 4.0
AD_CHECK_INTERVAL = 3.0
# absorbs clock and reporting skew at the end of an ad break
AD_GRACE_MS = 5000

# pubsub topics
TOPIC_STREAM_ENDED = "stream.on_ended"
TOPIC_AD_ENDED = "ad.on_ended"
TOPIC_TEXT_SOURCE = "text.source"
TOPIC_TEXT_INPUT = "text.input"

# input-origin tag of text typed back from twitch chat
CHAT_TEXTFIELD = "twitchChat"

TWITCH_MESSAGE_LIMIT = 500  # Character limit for Twitch messages
