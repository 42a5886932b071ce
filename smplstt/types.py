#!/usr/bin/env python3
"""Type definitions for smplstt structures."""

import dataclasses
import datetime
import enum
from typing import TypedDict


class ServiceNetworkState(enum.Enum):
    """connection state of a polled service feature"""

    DISCONNECTED = "disconnected"
    CONNECTED = "connected"


class TextEventType(enum.Enum):
    """completion marker of a transcript event"""

    INTERIM = "interim"
    FINAL = "final"


class SessionState(enum.Enum):
    """authentication lifecycle of the twitch session"""

    LOGGEDOUT = "loggedOut"
    AUTHENTICATING = "authenticating"
    ACTIVE = "active"


@dataclasses.dataclass(frozen=True)
class TextEvent:
    """a piece of text flowing through the captioner"""

    value: str | None
    type: TextEventType = TextEventType.FINAL
    source: str | None = None
    textfield: str | None = None


class PostSettings(TypedDict):
    """snapshot of the settings the chat post gate consults"""

    gate_on_live: bool
    gate_on_ad: bool
    posting_enabled: bool


class TokenInfo(TypedDict, total=False):
    """result of a token introspection call"""

    user_id: str
    login: str
    client_id: str
    scopes: list[str]
    expires_in: int


@dataclasses.dataclass(frozen=True)
class Credential:
    """bearer token plus the scopes it was requested with"""

    token: str
    scopes: tuple[str, ...]
    client_id: str | None = None


@dataclasses.dataclass(frozen=True)
class TwitchIdentity:
    """the authenticated user"""

    id: str
    login: str
    display_name: str


@dataclasses.dataclass(frozen=True)
class StreamRecord:
    """a running broadcast"""

    id: str
    user_login: str
    title: str = ""
    started_at: datetime.datetime | None = None


@dataclasses.dataclass(frozen=True)
class AdScheduleRecord:
    """ad schedule of a channel"""

    duration: int = 0
    last_ad_at: datetime.datetime | None = None


@dataclasses.dataclass
class TwitchContext:
    """shared twitch session state

    The service owns credential and identity, each polling loop owns its
    own state field.  generation is bumped on every logout so in-flight
    polls can tell their result is stale.
    """

    credential: Credential | None = None
    identity: TwitchIdentity | None = None
    live_state: ServiceNetworkState = ServiceNetworkState.DISCONNECTED
    ad_state: ServiceNetworkState = ServiceNetworkState.DISCONNECTED
    generation: int = 0
