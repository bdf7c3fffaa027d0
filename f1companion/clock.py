from datetime import datetime, timezone
from typing import Protocol


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Clock(Protocol):
    def now(self) -> datetime:
        """Return current UTC time."""
        ...


class SystemClock:
    def now(self) -> datetime:
        return utc_now()
