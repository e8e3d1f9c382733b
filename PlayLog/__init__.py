"""
PlayLog package.

Polls Steam playtime counters, turns them into play sessions attributed to a
local calendar day, and serves day/range totals.
"""
import logging

# Applications using this package should configure their own logging.
logging.getLogger(__name__).addHandler(logging.NullHandler())

VERSION = "0.1.0"
