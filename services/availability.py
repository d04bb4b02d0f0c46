from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import FrozenSet, Iterable, Iterator, List, Optional, Tuple
from zoneinfo import ZoneInfo

DEFAULT_WORKING_HOURS = (
    "10:00 AM", "11:00 AM", "12:00 PM", "01:00 PM",
    "02:00 PM", "03:00 PM", "04:00 PM", "05:00 PM",
)
SUNDAY = 6

TIME_FREE = "free"
TIME_BOOKED = "booked"
TIME_PAST = "past"


def time_to_minutes(label: str) -> int:
    """Convert a "HH:MM AM/PM" label to minutes since midnight.

    12 PM is noon (720) and 12 AM wraps to 0.
    """
    try:
        clock, period = label.strip().split(" ")
        hours_str, minutes_str = clock.split(":")
        hours, minutes = int(hours_str), int(minutes_str)
    except (AttributeError, ValueError):
        raise ValueError(f"Invalid time label: {label!r}")

    period = period.upper()
    if period not in ("AM", "PM") or not (1 <= hours <= 12) or not (0 <= minutes < 60):
        raise ValueError(f"Invalid time label: {label!r}")

    total = (hours % 12) * 60 + minutes
    if period == "PM":
        total += 12 * 60
    return total


@dataclass(frozen=True)
class BusinessHours:
    hours: Tuple[str, ...] = DEFAULT_WORKING_HOURS
    excluded_weekdays: FrozenSet[int] = field(default_factory=lambda: frozenset({SUNDAY}))

    @classmethod
    def from_config(cls, config) -> "BusinessHours":
        hours = tuple(config.get("WORKING_HOURS") or DEFAULT_WORKING_HOURS)
        excluded = config.get("EXCLUDED_WEEKDAYS")
        if excluded is None:
            excluded = [SUNDAY]
        return cls(hours=hours, excluded_weekdays=frozenset(int(d) for d in excluded))

    def is_working_hour(self, label: str) -> bool:
        return label in self.hours

    def is_open_on(self, day: date) -> bool:
        return day.weekday() not in self.excluded_weekdays


def business_now(tz_name: Optional[str] = None) -> datetime:
    """Naive wall-clock time in the business timezone."""
    if not tz_name:
        return datetime.now()
    return datetime.now(ZoneInfo(tz_name)).replace(tzinfo=None)


def has_passed(slot_date: date, label: str, now: datetime) -> bool:
    if slot_date < now.date():
        return True
    if slot_date > now.date():
        return False
    return time_to_minutes(label) <= now.hour * 60 + now.minute


class AvailabilityIndex:
    """Slots of one provider that can be offered at ``now``.

    Iterating yields slot objects (anything with ``date``, ``time``,
    ``channel`` and ``is_booked``); each iteration re-applies the filters, so
    the index can be walked any number of times.
    """

    def __init__(self, slots: Iterable, channel: str, now: datetime, hours: BusinessHours = None):
        self._slots = list(slots)
        self.channel = channel
        self.now = now
        self.hours = hours or BusinessHours()

    def _in_scope(self, slot) -> bool:
        return (
            slot.channel == self.channel
            and self.hours.is_open_on(slot.date)
            and self.hours.is_working_hour(slot.time)
        )

    def __iter__(self) -> Iterator:
        for slot in self._slots:
            if slot.is_booked or not self._in_scope(slot):
                continue
            if has_passed(slot.date, slot.time, self.now):
                continue
            yield slot

    def candidate_dates(self, count: int = 7) -> List[date]:
        dates = sorted({slot.date for slot in self})[:count]
        if len(dates) >= count or len(self.hours.excluded_weekdays) >= 7:
            return dates

        # Pad with open days from today so the date picker always has `count` entries
        seen = set(dates)
        day = self.now.date()
        while len(dates) < count:
            if day not in seen and self.hours.is_open_on(day):
                dates.append(day)
                seen.add(day)
            day += timedelta(days=1)
        return sorted(dates)

    def times_for(self, slot_date: date) -> List[dict]:
        order = {label: i for i, label in enumerate(self.hours.hours)}
        rows = [s for s in self._slots if s.date == slot_date and self._in_scope(s)]
        rows.sort(key=lambda s: order[s.time])

        out = []
        for slot in rows:
            if slot.is_booked:
                state = TIME_BOOKED
            elif has_passed(slot.date, slot.time, self.now):
                state = TIME_PAST
            else:
                state = TIME_FREE
            out.append({"time": slot.time, "status": state, "available": state == TIME_FREE})
        return out
