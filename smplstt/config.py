#!/usr/bin/env python3
"""
config file parsing/handling
"""

import contextlib
import logging
import pathlib
import sys
from collections import defaultdict
from collections.abc import Callable
from typing import Any

from PySide6.QtCore import (  # pylint: disable=no-name-in-module
    QCoreApplication,
    QSettings,
    QStandardPaths,
)

import smplstt
from smplstt.types import PostSettings

SettingsCallback = Callable[[Any], None]

# key: (default, type)
TWITCH_SETTINGS: dict[str, tuple[Any, type]] = {
    "twitch/token": ("", str),
    "twitch/clientid": ("", str),
    "twitch/redirecturi": ("", str),
    "twitch/chatEnable": (False, bool),
    "twitch/chatPostEnable": (False, bool),
    "twitch/chatPostAd": (False, bool),
    "twitch/chatPostLive": (False, bool),
    "twitch/chatPostInput": (False, bool),
    "twitch/chatPostSource": ("stt", str),
    "settings/loglevel": ("DEBUG", str),
}


class ConfigFile:  # pylint: disable=too-many-instance-attributes
    """read and write settings, notify watchers of changes"""

    def __init__(
        self,
        logpath: str | pathlib.Path | None = None,
        reset: bool = False,
        testmode: bool = False,
    ):
        self.version: str = smplstt.__version__
        self.testmode: bool = testmode
        self.basedir: pathlib.Path = pathlib.Path(
            QStandardPaths.standardLocations(QStandardPaths.DocumentsLocation)[0],
            QCoreApplication.applicationName(),
        )
        self.logpath: pathlib.Path = self.basedir.joinpath("logs", "debug.log")
        if logpath:
            self.logpath = pathlib.Path(logpath)

        logging.info("Logpath: %s", self.logpath)

        self.qsettingsformat: QSettings.Format = QSettings.NativeFormat
        if sys.platform == "win32":
            self.qsettingsformat = QSettings.IniFormat

        self.cparser: QSettings = QSettings(
            self.qsettingsformat,
            QSettings.UserScope,
            QCoreApplication.organizationName(),
            QCoreApplication.applicationName(),
        )
        logging.info("configuration: %s", self.cparser.fileName())
        self.loglevel: str = "DEBUG"
        self.watchers: defaultdict[str, list[SettingsCallback]] = defaultdict(list)

        self._force_set_statics()
        self.defaults()
        if reset:
            self.cparser.clear()
            self._force_set_statics()
            self.save()
        else:
            self.get()

    def _force_set_statics(self) -> None:
        """make sure these are always set"""
        if self.testmode:
            self.cparser.setValue("testmode/enabled", True)

    def get(self) -> None:
        """refresh values"""
        self.cparser.sync()
        with contextlib.suppress(TypeError):
            self.loglevel = self.value("settings/loglevel")

    def defaults(self) -> None:
        """default values for things"""
        logging.debug("set defaults")

        settings = QSettings(
            self.qsettingsformat,
            QSettings.SystemScope,
            QCoreApplication.organizationName(),
            QCoreApplication.applicationName(),
        )
        for key, (default, _) in TWITCH_SETTINGS.items():
            settings.setValue(key, default)

    def value(self, key: str) -> Any:
        """read a setting with its registered type and default"""
        if key not in TWITCH_SETTINGS:
            return self.cparser.value(key)
        default, valuetype = TWITCH_SETTINGS[key]
        result = self.cparser.value(key, defaultValue=default, type=valuetype)
        if result is None:
            return default
        return result

    def set_value(self, key: str, value: Any) -> None:
        """write a setting and tell anyone watching it"""
        previous = self.value(key)
        self.cparser.setValue(key, value)
        if previous == self.value(key):
            return
        logging.debug("%s changed", key)
        for callback in list(self.watchers.get(key, [])):
            try:
                callback(self.value(key))
            except Exception:  # pylint: disable=broad-except
                logging.exception("watcher for %s failed", key)

    def watch(self, key: str, callback: SettingsCallback) -> Callable[[], None]:
        """register callback for changes of key; returns an unwatch function"""
        self.watchers[key].append(callback)

        def unwatch() -> None:
            with contextlib.suppress(ValueError):
                self.watchers[key].remove(callback)

        return unwatch

    def post_settings(self) -> PostSettings:
        """current chat post gate settings"""
        return {
            "gate_on_live": self.value("twitch/chatPostLive"),
            "gate_on_ad": self.value("twitch/chatPostAd"),
            "posting_enabled": self.value("twitch/chatPostEnable"),
        }

    def save(self) -> None:
        """save the current set"""
        self.cparser.setValue("settings/loglevel", self.loglevel)
        self.cparser.sync()
