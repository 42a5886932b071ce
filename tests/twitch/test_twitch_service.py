#!/usr/bin/env python3
"""Unit tests for the twitch session lifecycle."""
# pylint: disable=redefined-outer-name

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio

import smplstt.twitch.service
from smplstt.exceptions import TwitchAuthFlowError
from smplstt.types import (
    AdScheduleRecord,
    ServiceNetworkState,
    SessionState,
    TextEvent,
    TextEventType,
    TwitchIdentity,
)

IDENTITY = TwitchIdentity(id="1234", login="streamer", display_name="Streamer")


def make_api():
    """api client double that logs in successfully"""
    api = MagicMock()
    api.twitch = MagicMock(name="twitch")
    api.introspect_token = AsyncMock(
        return_value={"user_id": "1234", "login": "streamer", "client_id": "client"}
    )
    api.authenticate = AsyncMock(return_value=api.twitch)
    api.get_user_by_id = AsyncMock(return_value=IDENTITY)
    api.get_stream_by_user_name = AsyncMock(return_value=None)
    api.get_ad_schedule = AsyncMock(return_value=AdScheduleRecord())
    api.close = AsyncMock()
    return api


def make_chat():
    """chat transport double"""
    chat = MagicMock()
    chat.connect = AsyncMock()
    return chat


@pytest_asyncio.fixture
async def service(bootstrap):
    """service with every collaborator mocked"""
    emotes = MagicMock()
    emotes.load_emotes = AsyncMock()
    svc = smplstt.twitch.service.TwitchService(
        config=bootstrap,
        api=make_api(),
        chat=make_chat(),
        emotes=emotes,
        live_interval=60,
        ad_interval=60,
    )
    yield svc
    await svc.stop()


@pytest.mark.asyncio
async def test_connect_empty_token(service):
    """an empty token is a logout and never reaches the network"""
    result = await service.connect("")

    assert result is False
    assert service.session_state == SessionState.LOGGEDOUT
    service.api.introspect_token.assert_not_called()
    service.api.get_user_by_id.assert_not_called()
    assert service.context.identity is None


@pytest.mark.asyncio
async def test_connect_uses_stored_token(service):
    """without an argument the stored token is used"""
    service.config.set_value("twitch/token", "stored")

    assert await service.connect()

    service.api.introspect_token.assert_awaited_once_with("stored")


@pytest.mark.asyncio
async def test_connect_no_user_id(service):
    """introspection without a user id logs out"""
    service.config.set_value("twitch/token", "abc")
    service.api.introspect_token.return_value = {}

    assert not await service.connect("abc")

    assert service.context.identity is None
    assert service.context.credential is None
    assert service.session_state == SessionState.LOGGEDOUT
    service.api.get_user_by_id.assert_not_called()
    assert service.config.value("twitch/token") == ""


@pytest.mark.asyncio
async def test_connect_user_missing(service):
    """token for a user twitch does not know logs out"""
    service.api.get_user_by_id.return_value = None

    assert not await service.connect("abc")

    assert service.context.identity is None
    assert service.context.credential is None
    service.chat.dispose.assert_called()


@pytest.mark.asyncio
async def test_connect_success(service):
    """a good token gives an active session"""
    assert await service.connect("abc")
    await asyncio.sleep(0)

    assert service.session_state == SessionState.ACTIVE
    assert service.context.identity == IDENTITY
    assert service.context.credential.token == "abc"
    assert service.context.credential.client_id == "client"
    assert "channel:read:ads" in service.context.credential.scopes
    service.api.get_user_by_id.assert_awaited_once_with("1234")
    service.api.get_stream_by_user_name.assert_awaited_once_with("streamer")
    service.emotes.load_emotes.assert_awaited_once_with("1234", service.api.twitch)
    service.chat.connect.assert_not_called()
    assert not service.coordinator.ad_polling


@pytest.mark.asyncio
async def test_connect_starts_chat_and_ads_when_enabled(service):
    """chatEnable and chatPostAd are honored at login"""
    service.config.set_value("twitch/chatEnable", True)
    service.config.set_value("twitch/chatPostAd", True)

    assert await service.connect("abc")

    service.chat.connect.assert_awaited_once_with("streamer", service.api.twitch)
    assert service.coordinator.ad_polling


@pytest.mark.asyncio
async def test_connect_failure_midway_logs_out(service):
    """an exception anywhere ends in logout"""
    service.config.set_value("twitch/chatEnable", True)
    service.chat.connect.side_effect = RuntimeError("irc down")

    assert not await service.connect("abc")

    assert service.session_state == SessionState.LOGGEDOUT
    assert service.context.identity is None
    assert service.context.credential is None


@pytest.mark.asyncio
async def test_connect_introspection_error(service):
    """network errors during login are swallowed into a logout"""
    service.api.introspect_token.side_effect = OSError("no network")

    assert not await service.connect("abc")

    assert service.session_state == SessionState.LOGGEDOUT


@pytest.mark.asyncio
async def test_logout(service):
    """logout clears the session and the stored token"""
    service.config.set_value("twitch/token", "abc")
    service.config.set_value("twitch/chatPostAd", True)
    assert await service.connect()
    service.context.live_state = ServiceNetworkState.CONNECTED

    await service.logout()
    await service.logout()

    assert service.config.value("twitch/token") == ""
    assert service.context.identity is None
    assert service.context.credential is None
    assert service.live_state == ServiceNetworkState.DISCONNECTED
    assert service.session_state == SessionState.LOGGEDOUT
    service.emotes.dispose.assert_called()
    service.api.close.assert_awaited()
    # ad polling keeps running and reports disconnected on its own
    assert service.coordinator.ad_polling
    await service.coordinator.check_ad_status()
    assert service.ad_state == ServiceNetworkState.DISCONNECTED


@pytest.mark.asyncio
async def test_init_watches_ad_setting(service):
    """toggling chatPostAd starts and stops ad polling"""
    await service.init()

    service.config.set_value("twitch/chatPostAd", True)
    assert service.coordinator.ad_polling

    service.context.ad_state = ServiceNetworkState.CONNECTED
    service.config.set_value("twitch/chatPostAd", False)
    assert not service.coordinator.ad_polling
    assert service.ad_state == ServiceNetworkState.DISCONNECTED


@pytest.mark.asyncio
async def test_init_watches_chat_setting(service):
    """toggling chatEnable connects and disconnects chat"""
    service.config.set_value("twitch/token", "abc")
    await service.init()
    assert service.coordinator.live_polling

    service.config.set_value("twitch/chatEnable", True)
    await asyncio.sleep(0)
    service.chat.connect.assert_awaited_once_with("streamer", service.api.twitch)

    service.config.set_value("twitch/chatEnable", False)
    service.chat.disconnect.assert_called_once()


@pytest.mark.asyncio
async def test_chat_enable_without_login(service):
    """chatEnable while logged out does not try to connect"""
    await service.init()

    service.config.set_value("twitch/chatEnable", True)
    await asyncio.sleep(0)

    service.chat.connect.assert_not_called()


@pytest.mark.asyncio
async def test_source_events_are_posted(service):
    """final transcript text from the selected source reaches chat"""
    service.config.set_value("twitch/chatPostEnable", True)
    await service.init()

    service.pubsub.publish("text.source", TextEvent(value="hello", source="stt"))
    service.pubsub.publish(
        "text.source", TextEvent(value="partial", type=TextEventType.INTERIM, source="stt")
    )
    service.pubsub.publish("text.source", TextEvent(value="hola", source="translation"))

    service.chat.post.assert_called_once_with("hello")


@pytest.mark.asyncio
async def test_source_events_follow_selected_source(service):
    """chatPostSource picks the pipeline that is mirrored"""
    service.config.set_value("twitch/chatPostEnable", True)
    service.config.set_value("twitch/chatPostSource", "translation")

    assert not service.handle_source_event(TextEvent(value="hello", source="stt"))
    assert service.handle_source_event(TextEvent(value="hola", source="translation"))


@pytest.mark.asyncio
async def test_source_events_gated_on_live(service):
    """live gate holds text back while offline"""
    service.config.set_value("twitch/chatPostEnable", True)
    service.config.set_value("twitch/chatPostLive", True)

    assert not service.handle_source_event(TextEvent(value="hello", source="stt"))
    service.context.live_state = ServiceNetworkState.CONNECTED
    assert service.handle_source_event(TextEvent(value="hello", source="stt"))


@pytest.mark.asyncio
async def test_input_events(service):
    """typed input needs chatPostInput and never echoes chat"""
    service.config.set_value("twitch/chatPostEnable", True)
    typed = TextEvent(value="typed", textfield="main")
    echo = TextEvent(value="from chat", textfield="twitchChat")

    assert not service.handle_input_event(typed)

    service.config.set_value("twitch/chatPostInput", True)
    assert service.handle_input_event(typed)
    assert not service.handle_input_event(echo)
    service.chat.post.assert_called_once_with("typed")


@pytest.mark.asyncio
async def test_chat_messages_come_back_as_input(bootstrap):
    """incoming chat is published as input and rejected by the echo gate"""
    svc = smplstt.twitch.service.TwitchService(config=bootstrap, api=make_api())
    received = []
    svc.pubsub.subscribe("text.input", received.append)

    svc.chat.on_message(TextEvent(value="hi", textfield="twitchChat"))

    assert received[0].textfield == "twitchChat"
    assert not svc.handle_input_event(received[0])
    await svc.stop()


@pytest.mark.asyncio
async def test_login(service):
    """browser login stores the token and connects with it"""
    flow = MagicMock()
    flow.run = AsyncMock(return_value="fromthebrowser")
    service.auth_flow_factory = MagicMock(return_value=flow)

    assert await service.login()

    service.auth_flow_factory.assert_called_once_with(service.config)
    assert service.config.value("twitch/token") == "fromthebrowser"
    service.api.introspect_token.assert_awaited_once_with("fromthebrowser")
    assert service.session_state == SessionState.ACTIVE


@pytest.mark.asyncio
async def test_login_aborted(service):
    """a failed browser login leaves things alone"""
    flow = MagicMock()
    flow.run = AsyncMock(side_effect=TwitchAuthFlowError("timed out"))
    service.auth_flow_factory = MagicMock(return_value=flow)

    assert not await service.login()

    service.api.introspect_token.assert_not_called()
    assert service.session_state == SessionState.LOGGEDOUT


@pytest.mark.asyncio
async def test_ad_toggle_during_slow_login(service):
    """chatPostAd flipped while the login is still in flight is honoured"""
    release = asyncio.Event()

    async def slow_user(user_id):  # pylint: disable=unused-argument
        await release.wait()
        return IDENTITY

    service.api.get_user_by_id = AsyncMock(side_effect=slow_user)
    service.config.set_value("twitch/token", "abc")
    init = asyncio.create_task(service.init())
    await asyncio.sleep(0.01)
    assert service.session_state == SessionState.AUTHENTICATING

    service.config.set_value("twitch/chatPostAd", True)
    assert service.coordinator.ad_polling

    release.set()
    await init
    assert service.session_state == SessionState.ACTIVE


@pytest.mark.asyncio
async def test_chat_disabled_while_joining(service):
    """chatEnable switched off while chat is joining leaves chat disconnected"""
    release = asyncio.Event()

    async def slow_join(channel, twitch):  # pylint: disable=unused-argument
        await release.wait()

    service.chat.connect = AsyncMock(side_effect=slow_join)
    service.config.set_value("twitch/token", "abc")
    service.config.set_value("twitch/chatEnable", True)
    init = asyncio.create_task(service.init())
    await asyncio.sleep(0.01)
    service.chat.connect.assert_awaited_once()

    service.config.set_value("twitch/chatEnable", False)
    release.set()
    await init

    assert service.chat.disconnect.call_count == 2
