#!/usr/bin/env python3
"""twitch session: login, logout and chat mirroring of captions"""

import asyncio
import logging
from collections.abc import Callable
from typing import Any

import smplstt.config
import smplstt.pubsub
import smplstt.utils
from smplstt.exceptions import TwitchAuthError, TwitchAuthFlowError
from smplstt.twitch.api import TwitchApiClient
from smplstt.twitch.chat import TwitchChatTransport
from smplstt.twitch.constants import (
    AD_CHECK_INTERVAL,
    AUTH_SCOPE_STRINGS,
    LIVE_CHECK_INTERVAL,
    TOPIC_TEXT_INPUT,
    TOPIC_TEXT_SOURCE,
)
from smplstt.twitch.coordinator import ConnectionStateCoordinator
from smplstt.twitch.emotes import TwitchEmotes
from smplstt.twitch.gate import forward_if_allowed
from smplstt.twitch.oauth2 import TwitchAuthFlow
from smplstt.types import (
    Credential,
    ServiceNetworkState,
    SessionState,
    TextEvent,
    TwitchContext,
)


class TwitchService:  # pylint: disable=too-many-instance-attributes
    """drive the twitch session and everything hanging off it

    connect() never leaves a half logged in session behind: any failure
    on the way ends in logout().  logout() leaves the ad polling loop
    alone; it notices the missing identity on its next tick and reports
    disconnected until the chatPostAd setting is switched off.
    """

    def __init__(  # pylint: disable=too-many-arguments
        self,
        config: smplstt.config.ConfigFile,
        pubsub: smplstt.pubsub.PubSub | None = None,
        api: TwitchApiClient | None = None,
        chat: TwitchChatTransport | None = None,
        emotes: TwitchEmotes | None = None,
        auth_flow_factory: Callable[[smplstt.config.ConfigFile], TwitchAuthFlow] = TwitchAuthFlow,
        live_interval: float = LIVE_CHECK_INTERVAL,
        ad_interval: float = AD_CHECK_INTERVAL,
    ):
        self.config = config
        self.pubsub = pubsub or smplstt.pubsub.PubSub()
        self.api = api or TwitchApiClient()
        self.chat = chat or TwitchChatTransport(on_message=self._on_chat_message)
        self.emotes = emotes or TwitchEmotes()
        self.auth_flow_factory = auth_flow_factory
        self.context = TwitchContext()
        self.coordinator = ConnectionStateCoordinator(
            self.context,
            self.api,
            self.api,
            self.pubsub,
            live_interval=live_interval,
            ad_interval=ad_interval,
        )
        self.session_state = SessionState.LOGGEDOUT
        self.unsubscribers: list[Callable[[], None]] = []
        self.tasks: set[asyncio.Task] = set()

    @property
    def live_state(self) -> ServiceNetworkState:
        """is the channel broadcasting"""
        return self.context.live_state

    @property
    def ad_state(self) -> ServiceNetworkState:
        """is an ad break running"""
        return self.context.ad_state

    def _spawn(self, coro: Any, name: str) -> asyncio.Task:
        return smplstt.utils.create_tracked_task(self.tasks, coro, name=name)

    async def init(self) -> None:
        """start polling, hook up settings, log in with the stored token"""
        self.coordinator.start_live_polling()
        self.unsubscribers.extend(
            [
                self.config.watch("twitch/chatEnable", self.on_chat_enable),
                self.config.watch("twitch/chatPostAd", self.on_chat_post_ad),
                self.pubsub.subscribe(TOPIC_TEXT_SOURCE, self.handle_source_event),
                self.pubsub.subscribe(TOPIC_TEXT_INPUT, self.handle_input_event),
            ]
        )
        await self.connect()

    async def connect(self, token: str | None = None) -> bool:
        """turn token (default: the stored one) into an active session"""
        if token is None:
            token = self.config.value("twitch/token")
        try:
            if not token:
                logging.debug("no twitch token, logging out")
                await self.logout()
                return False

            self.session_state = SessionState.AUTHENTICATING
            tokeninfo = await self.api.introspect_token(token)
            if not tokeninfo.get("user_id"):
                raise TwitchAuthError("token does not belong to a user")

            credential = Credential(
                token=token,
                scopes=tuple(AUTH_SCOPE_STRINGS),
                client_id=tokeninfo.get("client_id"),
            )
            twitch = await self.api.authenticate(credential)
            self.context.credential = credential

            identity = await self.api.get_user_by_id(tokeninfo["user_id"])
            if not identity:
                raise TwitchAuthError(f"user {tokeninfo['user_id']} not found")

            self.context.identity = identity
            self.session_state = SessionState.ACTIVE
            logging.info("logged into twitch as %s", identity.login)

            self._spawn(self.coordinator.check_live(), name="check_live")
            if self.config.value("twitch/chatPostAd"):
                self.coordinator.start_ad_polling()
            self._spawn(self.emotes.load_emotes(identity.id, twitch), name="twitch_emotes")
            if self.config.value("twitch/chatEnable"):
                await self.chat.connect(identity.login, twitch)
                # switched off while joining
                if not self.config.value("twitch/chatEnable"):
                    self.chat.disconnect()
            return True
        except TwitchAuthError as error:
            logging.error("twitch login failed: %s", error)
        except Exception:  # pylint: disable=broad-except
            logging.exception("twitch login failed")
        await self.logout()
        return False

    async def logout(self) -> None:
        """drop the session and everything derived from it"""
        if self.config.value("twitch/token"):
            self.config.set_value("twitch/token", "")
        self.chat.dispose()
        self.context.generation += 1
        self.context.credential = None
        self.context.identity = None
        await self.api.close()
        self.emotes.dispose()
        self.context.live_state = ServiceNetworkState.DISCONNECTED
        if self.session_state != SessionState.LOGGEDOUT:
            logging.info("logged out of twitch")
        self.session_state = SessionState.LOGGEDOUT

    async def login(self) -> bool:
        """run the browser login and connect with the token it returns"""
        try:
            token = await self.auth_flow_factory(self.config).run()
        except TwitchAuthFlowError as error:
            logging.error("twitch login aborted: %s", error)
            return False
        except Exception:  # pylint: disable=broad-except
            logging.exception("twitch login flow crashed")
            return False
        self.config.set_value("twitch/token", token)
        return await self.connect(token)

    def on_chat_enable(self, enabled: bool) -> None:
        """chatEnable setting changed"""
        if not enabled:
            self.chat.disconnect()
            return
        if self.context.identity and self.context.credential and self.api.twitch:
            self._spawn(
                self.chat.connect(self.context.identity.login, self.api.twitch),
                name="twitch_chat_connect",
            )

    def on_chat_post_ad(self, enabled: bool) -> None:
        """chatPostAd setting changed"""
        if enabled:
            self.coordinator.start_ad_polling()
        else:
            self.coordinator.stop_ad_polling()

    def _on_chat_message(self, event: TextEvent) -> None:
        self.pubsub.publish(TOPIC_TEXT_INPUT, event)

    def handle_source_event(self, event: TextEvent | None) -> bool:
        """transcript text from the selected source pipeline"""
        if event and event.source and event.source != self.config.value("twitch/chatPostSource"):
            return False
        return forward_if_allowed(
            self.chat,
            event,
            self.config.post_settings(),
            self.context.live_state,
            self.context.ad_state,
        )

    def handle_input_event(self, event: TextEvent | None) -> bool:
        """text typed into the captioner"""
        if not self.config.value("twitch/chatPostInput"):
            return False
        return forward_if_allowed(
            self.chat,
            event,
            self.config.post_settings(),
            self.context.live_state,
            self.context.ad_state,
            from_input=True,
        )

    async def stop(self) -> None:
        """shut everything down"""
        for unsubscribe in self.unsubscribers:
            unsubscribe()
        self.unsubscribers = []
        await self.coordinator.stop()
        self.chat.dispose()
        await self.api.close()
        for task in list(self.tasks):
            task.cancel()
        if self.tasks:
            await asyncio.gather(*self.tasks, return_exceptions=True)
        logging.debug("twitch service stopped")
