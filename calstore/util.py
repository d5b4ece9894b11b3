"""Constants and defaults for calstore.

Durations are ``timedelta`` values and times of day are ``time`` values, so
they can be combined directly with the naive wall-clock datetimes that events
carry.
"""

from datetime import time, timedelta

# Durations
MINUTE = timedelta(minutes=1)
HOUR = timedelta(hours=1)
DAY = timedelta(days=1)
WEEK = timedelta(weeks=1)

# Length given to an event created without an end, and the end an event snaps
# to when an edit would move it before its start
DEFAULT_DURATION = HOUR

# Window used for all-day events
ALL_DAY_START = time(8, 0)
ALL_DAY_END = time(17, 0)
