#!/usr/bin/env python3
"""Helix API access, reduced to the records the twitch service needs"""

import logging
from typing import Protocol

import aiohttp
from twitchAPI.helper import first  # pylint: disable=import-error
from twitchAPI.oauth import validate_token  # pylint: disable=import-error
from twitchAPI.twitch import Twitch  # pylint: disable=import-error

from smplstt.exceptions import TwitchAuthError
from smplstt.twitch.constants import AUTH_SCOPES
from smplstt.types import (
    AdScheduleRecord,
    Credential,
    StreamRecord,
    TokenInfo,
    TwitchIdentity,
)


class IdentityProvider(Protocol):
    """turns a token into a user"""

    async def introspect_token(self, token: str) -> TokenInfo: ...

    async def get_user_by_id(self, user_id: str) -> TwitchIdentity | None: ...


class StreamStatusProvider(Protocol):
    """is a channel broadcasting"""

    async def get_stream_by_user_name(self, name: str) -> StreamRecord | None: ...


class AdScheduleProvider(Protocol):
    """ad break information for a channel"""

    async def get_ad_schedule(self, user_id: str) -> AdScheduleRecord: ...


class TwitchApiClient:
    """twitchAPI backed identity, stream status and ad schedule lookups"""

    def __init__(self, timeout: float = 30):
        self.twitch: Twitch | None = None
        self.timeout = aiohttp.ClientTimeout(total=timeout)

    async def introspect_token(self, token: str) -> TokenInfo:
        """ask twitch who a token belongs to; empty dict when it is not valid"""
        if not token:
            return {}
        tokenval = await validate_token(token)
        if tokenval.get("status") == 401:
            logging.error("token validation failed: %s", tokenval.get("message"))
            return {}
        info: TokenInfo = {}
        for key in ("user_id", "login", "client_id", "scopes", "expires_in"):
            if tokenval.get(key) is not None:
                info[key] = tokenval[key]
        return info

    async def authenticate(self, credential: Credential) -> Twitch:
        """build the user authenticated Twitch object for credential"""
        if not credential.client_id:
            raise TwitchAuthError("token has no client id")
        await self.close()
        twitch = await Twitch(
            credential.client_id, authenticate_app=False, session_timeout=self.timeout
        )
        # static long-lived token, nothing to refresh with
        twitch.auto_refresh_auth = False
        await twitch.set_user_authentication(
            token=credential.token,
            scope=AUTH_SCOPES,
            validate=False,
        )
        self.twitch = twitch
        return twitch

    def _require_twitch(self) -> Twitch:
        if not self.twitch:
            raise TwitchAuthError("not authenticated")
        return self.twitch

    async def get_user_by_id(self, user_id: str) -> TwitchIdentity | None:
        """fetch a user record"""
        user = await first(self._require_twitch().get_users(user_ids=[user_id]))
        if not user:
            return None
        return TwitchIdentity(id=user.id, login=user.login, display_name=user.display_name)

    async def get_stream_by_user_name(self, name: str) -> StreamRecord | None:
        """the running broadcast of name, if any"""
        stream = await first(self._require_twitch().get_streams(user_login=[name]))
        if not stream:
            return None
        return StreamRecord(
            id=stream.id,
            user_login=stream.user_login,
            title=stream.title,
            started_at=stream.started_at,
        )

    async def get_ad_schedule(self, user_id: str) -> AdScheduleRecord:
        """duration and start of the last ad break"""
        schedule = await self._require_twitch().get_ad_schedule(user_id)
        return AdScheduleRecord(
            duration=schedule.duration or 0, last_ad_at=schedule.last_ad_at or None
        )

    async def close(self) -> None:
        """drop the Twitch object"""
        if self.twitch:
            try:
                await self.twitch.close()
            except Exception as error:  # pylint: disable=broad-except
                logging.error("closing twitch api failed: %s", error)
        self.twitch = None
