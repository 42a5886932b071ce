#!/usr/bin/env python3
"""bootstrap the app"""

import logging
import logging.handlers
import pathlib
import sys

from PySide6.QtCore import QCoreApplication, QStandardPaths  # pylint: disable=no-name-in-module


def verify_python_version() -> bool:
    """make sure the correct version of python is being used"""
    if sys.version_info < (3, 10):
        logging.error("Python Version must be 3.10 or higher.")
        return False
    return True


def set_qt_names(
    app: QCoreApplication | None = None,
    domain: str = "com.github.smplstt",
    appname: str = "smplstt",
):
    """bootstrap Qt for configuration"""
    if not app:
        app = QCoreApplication.instance()
    if not app:
        app = QCoreApplication()
    app.setOrganizationDomain(domain)
    app.setOrganizationName("smplstt")
    app.setApplicationName(appname)


LOGFORMAT = (
    "%(asctime)s %(levelname)s %(process)d %(threadName)s "
    "%(module)s:%(funcName)s:%(lineno)d %(message)s"
)


def default_logdir() -> pathlib.Path:
    """per-user data directory for the log files"""
    return pathlib.Path(
        QStandardPaths.writableLocation(QStandardPaths.AppLocalDataLocation)
    ).joinpath("logs")


def setuplogging(
    logdir: pathlib.Path | str | None = None,
    logname: str = "debug.log",
    rotate: bool = False,
    console: bool = False,
) -> pathlib.Path:
    """log to logdir/logname; rotate starts every run with a fresh file"""
    logpath = pathlib.Path(logdir) if logdir else default_logdir()
    logpath.mkdir(parents=True, exist_ok=True)
    logfile = logpath.joinpath(logname)

    logfhandler = logging.handlers.RotatingFileHandler(
        filename=logfile, backupCount=5, encoding="utf-8", delay=True
    )
    if rotate and logfile.exists() and logfile.stat().st_size:
        try:
            logfhandler.doRollover()
        except OSError as error:
            logging.warning("appending to %s, rotation failed: %s", logfile, error)

    handlers: list[logging.Handler] = [logfhandler]
    if console:
        handlers.append(logging.StreamHandler())

    logging.basicConfig(
        format=LOGFORMAT,
        datefmt="%Y-%m-%dT%H:%M:%S%z",
        handlers=handlers,
        level=logging.DEBUG,
    )
    logging.captureWarnings(True)
    return logpath
