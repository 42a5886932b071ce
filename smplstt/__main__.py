#!/usr/bin/env python3
"""smplstt twitch bridge as run via python -m"""

import argparse
import logging
import platform
import sys

import smplstt
import smplstt.bootstrap
import smplstt.config
import smplstt.twitch.launch


def main():  # pragma: no cover
    """main entrypoint"""
    parser = argparse.ArgumentParser(
        description="Mirror captions into Twitch chat while tracking live and ad status"
    )
    parser.add_argument("--login", action="store_true", help="Log in through the browser")
    parser.add_argument("--logout", action="store_true", help="Forget the stored token")
    parser.add_argument(
        "--no-stdin", action="store_true", help="Do not read caption lines from stdin"
    )
    parser.add_argument("--console", action="store_true", help="Also log to the console")
    parser.add_argument("--loglevel", help="Log level (DEBUG, INFO, ...)")
    args = parser.parse_args()

    smplstt.bootstrap.set_qt_names()
    logpath = smplstt.bootstrap.setuplogging(rotate=True, console=args.console)
    logging.info("starting up v%s on %s", smplstt.__version__, platform.platform())
    if not smplstt.bootstrap.verify_python_version():
        sys.exit(1)

    config = smplstt.config.ConfigFile(logpath=logpath)
    if args.loglevel:
        config.loglevel = args.loglevel.upper()
        config.save()
    logging.getLogger().setLevel(config.loglevel)

    if args.logout:
        config.set_value("twitch/token", "")
        config.save()
        return

    smplstt.twitch.launch.start(
        config, textin=None if args.no_stdin else sys.stdin, interactive_login=args.login
    )


if __name__ == "__main__":
    main()
