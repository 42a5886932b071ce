#!/usr/bin/env python3
"""Twitch implicit grant login through the user's browser"""

import asyncio
import logging
import pathlib
import urllib.parse
import webbrowser

import jinja2
from aiohttp import web

import smplstt.config
from smplstt.exceptions import TwitchAuthFlowError
from smplstt.twitch.constants import (
    AUTH_MESSAGE_PREFIX,
    AUTH_SCOPE_STRINGS,
    AUTHORIZE_URL,
    REDIRECT_PATH,
    REDIRECT_PORT,
)

MESSAGE_PATH = "/oauth_twitch_message"
TEMPLATEDIR = pathlib.Path(__file__).resolve().parent.parent.joinpath("templates")


def parse_auth_message(message: object) -> str | None:
    """pull the token out of a 'smplstt_tw_auth:<token>' message"""
    if not isinstance(message, str) or not message.startswith(AUTH_MESSAGE_PREFIX):
        return None
    token = message.partition(":")[2].strip()
    return token or None


class TwitchAuthFlow:
    """open the authorize page and wait for the browser to hand back a token"""

    def __init__(self, config: smplstt.config.ConfigFile, port: int = REDIRECT_PORT):
        self.config = config
        self.port = port
        self.client_id: str = config.value("twitch/clientid")
        self.redirect_uri: str = (
            config.value("twitch/redirecturi") or f"http://localhost:{port}{REDIRECT_PATH}"
        )
        self.jinja2 = jinja2.Environment(
            loader=jinja2.FileSystemLoader(TEMPLATEDIR), autoescape=True
        )
        self.token_future: asyncio.Future[str] | None = None

    def get_auth_url(self) -> str:
        """url of the twitch consent page"""
        if not self.client_id:
            raise TwitchAuthFlowError("Twitch client ID is not configured")
        params = {
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "response_type": "token",
            "scope": " ".join(AUTH_SCOPE_STRINGS),
        }
        return f"{AUTHORIZE_URL}?{urllib.parse.urlencode(params, safe=':/')}"

    async def redirect_handler(self, request: web.Request) -> web.Response:  # pylint: disable=unused-argument
        """page twitch redirects to; it posts the fragment token back"""
        template = self.jinja2.get_template("oauth/oauth_twitch.htm")
        return web.Response(
            text=template.render(message_path=MESSAGE_PATH, prefix=AUTH_MESSAGE_PREFIX),
            content_type="text/html",
        )

    async def message_handler(self, request: web.Request) -> web.Response:
        """receive the token message from the redirect page"""
        token = parse_auth_message(await request.text())
        if not token:
            logging.debug("ignoring unrelated auth message")
            return web.Response(status=400, text="unexpected message")
        if self.token_future and not self.token_future.done():
            self.token_future.set_result(token)
        return web.Response(text="ok")

    def create_app(self) -> web.Application:
        """routes for the local redirect listener"""
        app = web.Application()
        app.add_routes(
            [
                web.get(REDIRECT_PATH, self.redirect_handler),
                web.post(MESSAGE_PATH, self.message_handler),
            ]
        )
        return app

    async def run(self, timeout: float = 300) -> str:
        """do the whole dance; returns the access token"""
        url = self.get_auth_url()
        self.token_future = asyncio.get_running_loop().create_future()
        runner = web.AppRunner(self.create_app())
        await runner.setup()
        site = web.TCPSite(runner, "localhost", self.port)
        await site.start()
        try:
            logging.info("opening browser for twitch login")
            if not webbrowser.open(url):
                logging.warning("could not open a browser, visit %s", url)
            return await asyncio.wait_for(self.token_future, timeout=timeout)
        except asyncio.TimeoutError as error:
            raise TwitchAuthFlowError("timed out waiting for twitch login") from error
        finally:
            await runner.cleanup()
            self.token_future = None
