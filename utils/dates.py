"""Calendar helpers. Weeks start on Sunday and day-of-week 0 is Sunday."""

from datetime import date, datetime, timedelta
from typing import Iterator, Optional, Tuple, Union

from utils.errors import ValidationError

DAY_NAMES = ["Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"]


def day_of_week(day: date) -> int:
    """Return 0 for Sunday through 6 for Saturday."""
    return (day.weekday() + 1) % 7


def start_of_week(day: date) -> date:
    return day - timedelta(days=day_of_week(day))


def end_of_week(day: date) -> date:
    return start_of_week(day) + timedelta(days=6)


def is_same_week(first: date, second: date) -> bool:
    return start_of_week(first) == start_of_week(second)


def iter_dates(start: date, end: date) -> Iterator[date]:
    """Yield every date from start to end, both inclusive."""
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


def iter_batches(start: date, end: date, size: int) -> Iterator[Tuple[date, date]]:
    """Split [start, end] into consecutive windows of at most `size` days."""
    if size < 1:
        raise ValidationError("Batch size must be at least 1", details={"batch_size": size})
    current = start
    while current <= end:
        batch_end = min(current + timedelta(days=size - 1), end)
        yield current, batch_end
        current = batch_end + timedelta(days=1)


def overlap_range(
    first_start: date,
    first_end: Optional[date],
    second_start: date,
    second_end: Optional[date],
) -> Optional[Tuple[date, Optional[date]]]:
    """Return the intersection of two closed ranges, or None when disjoint.

    An end of None means the range is open-ended.
    """
    if first_end is not None and second_start > first_end:
        return None
    if second_end is not None and first_start > second_end:
        return None

    start = max(first_start, second_start)
    if first_end is None:
        end = second_end
    elif second_end is None:
        end = first_end
    else:
        end = min(first_end, second_end)
    return start, end


def parse_date(value: Union[str, date, datetime]) -> date:
    """Coerce an ISO string, date or datetime into a calendar date."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(value[:10])
    except (TypeError, ValueError) as e:
        raise ValidationError(f"Invalid date: {value!r}", details={"value": str(value)}) from e


def today_utc() -> date:
    return datetime.utcnow().date()
