import datetime
from typing import Callable

# A clock is any zero-argument callable returning a naive UTC datetime.
Clock = Callable[[], datetime.datetime]


def utc_now() -> datetime.datetime:
    """Current instant as naive UTC, matching how instants are stored."""
    return datetime.datetime.now(datetime.timezone.utc).replace(tzinfo=None)


class FixedClock:
    """
    A clock pinned to one instant. Used by tests and by anything that needs
    to replay an operation "as of" a given moment.
    """

    def __init__(self, now: datetime.datetime):
        self.now = now

    def __call__(self) -> datetime.datetime:
        return self.now

    def advance(self, delta: datetime.timedelta) -> None:
        self.now = self.now + delta
