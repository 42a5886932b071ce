#!/usr/bin/env python3
"""exceptions used across smplstt"""


class TwitchAuthError(Exception):
    """token could not be turned into a usable identity"""


class TwitchAuthFlowError(Exception):
    """the browser authorization flow did not produce a token"""
