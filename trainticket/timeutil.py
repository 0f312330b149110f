"""Calendar dates within one season and clock times that count whole days."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date as _date
from datetime import timedelta

# Every date lives in one fixed, non-leap year.
_YEAR = 2021


def _padded(value: int) -> str:
    return f"0{value}" if value < 10 else str(value)


@dataclass(frozen=True)
class Date:
    """A month and day of the sales season."""

    month: int
    day: int

    def __post_init__(self) -> None:
        self._as_date()

    def _as_date(self) -> _date:
        try:
            return _date(_YEAR, self.month, self.day)
        except ValueError as exc:
            raise ValueError(f"invalid date {self.month}-{self.day}") from exc

    @classmethod
    def parse(cls, text: str) -> Date:
        """Read a date written as ``MM-DD``."""
        parts = text.split("-")
        if len(parts) != 2:
            raise ValueError(f"expected MM-DD, got {text!r}")
        return cls(month=int(parts[0]), day=int(parts[1]))

    def __add__(self, other: object) -> Date:
        """Move the date forward by a number of days."""
        if isinstance(other, bool) or not isinstance(other, int):
            return NotImplemented
        moved = self._as_date() + timedelta(days=other)
        if moved.year != _YEAR:
            raise ValueError(f"{self} shifted by {other} days leaves the year")
        return Date(month=moved.month, day=moved.day)

    __radd__ = __add__

    def __sub__(self, other: object) -> int | Date:
        """Days between two dates, or the date a number of days earlier."""
        if isinstance(other, Date):
            return (self._as_date() - other._as_date()).days
        if isinstance(other, int) and not isinstance(other, bool):
            return self + (-other)
        return NotImplemented

    def _key(self) -> tuple[int, int]:
        return (self.month, self.day)

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Date):
            return NotImplemented
        return self._key() < other._key()

    def __le__(self, other: object) -> bool:
        if not isinstance(other, Date):
            return NotImplemented
        return self._key() <= other._key()

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, Date):
            return NotImplemented
        return self._key() > other._key()

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, Date):
            return NotImplemented
        return self._key() >= other._key()

    def __str__(self) -> str:
        return f"{_padded(self.month)}-{_padded(self.day)}"


@dataclass(frozen=True)
class Time:
    """A time of day plus a count of days since the train set off.

    Values are normalised on creation: minutes carry into hours and hours
    into days.
    """

    day: int = 0
    hour: int = 0
    minute: int = 0

    def __post_init__(self) -> None:
        carry_hours, minute = divmod(self.minute, 60)
        carry_days, hour = divmod(self.hour + carry_hours, 24)
        object.__setattr__(self, "minute", minute)
        object.__setattr__(self, "hour", hour)
        object.__setattr__(self, "day", self.day + carry_days)

    def _total(self) -> int:
        return (self.day * 24 + self.hour) * 60 + self.minute

    def __add__(self, other: object) -> Time:
        """Add another time, or a number of minutes."""
        if isinstance(other, Time):
            return Time(
                day=self.day + other.day,
                hour=self.hour + other.hour,
                minute=self.minute + other.minute,
            )
        if isinstance(other, int) and not isinstance(other, bool):
            return Time(day=self.day, hour=self.hour, minute=self.minute + other)
        return NotImplemented

    __radd__ = __add__

    def __sub__(self, other: object) -> int:
        """Minutes from `other` to this time."""
        if not isinstance(other, Time):
            return NotImplemented
        return self._total() - other._total()

    def __lt__(self, other: object) -> bool:
        """Compare the clock reading only, ignoring the day."""
        if not isinstance(other, Time):
            return NotImplemented
        return (self.hour, self.minute) < (other.hour, other.minute)

    def __str__(self) -> str:
        return f"{_padded(self.hour)}:{_padded(self.minute)}"