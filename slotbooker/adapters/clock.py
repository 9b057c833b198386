"""
Clock adapters providing the current instant.
"""

import pendulum
from pendulum import DateTime


class SystemClock:
    """Wall clock in the configured timezone."""

    def __init__(self, timezone: str = "Europe/Madrid"):
        self.timezone = timezone

    def now(self) -> DateTime:
        return pendulum.now(self.timezone)


class FixedClock:
    """
    Clock frozen at a given instant.

    Used by tests and by the CLI ``--now`` option to answer "what was
    bookable at that time".
    """

    def __init__(self, instant: DateTime):
        self.instant = instant

    def now(self) -> DateTime:
        return self.instant
