#!/usr/bin/env python3
"""Twitch chat and broadcast status integration for the smplstt captioner"""

__version__ = "1.0.0"
