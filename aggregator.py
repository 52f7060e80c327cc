# EVENT AGGREGATION
# Groups logged timestamps into calendar buckets for the bar charts.
# Every function here is pure: callers pass a snapshot of events and "now".

from collections import Counter
from dataclasses import dataclass
from datetime import date, datetime

DAY_LABEL = "%d %b"
MONTH_LABEL = "%b"


class UnknownViewError(KeyError):
    pass


# ---------------- BUCKET TYPES ----------------
@dataclass(frozen=True)
class Bucket:
    label: str
    start: date
    count: int


@dataclass(frozen=True)
class BucketSeries:
    """Buckets in chart order, with the parallel arrays the chart needs."""

    buckets: tuple

    @property
    def labels(self):
        return [b.label for b in self.buckets]

    @property
    def counts(self):
        return [b.count for b in self.buckets]

    @property
    def points(self):
        return [(i, b.count) for i, b in enumerate(self.buckets)]

    @property
    def total(self):
        return sum(self.counts)

    def __len__(self):
        return len(self.buckets)

    def to_dict(self):
        return {
            "labels": self.labels,
            "counts": self.counts,
            "starts": [b.start.isoformat() for b in self.buckets],
            "total": self.total,
        }


# ---------------- HELPERS ----------------
def _as_date(value):
    """Local calendar date of `value`; aware datetimes are moved to local time first."""
    # datetime is a subclass of date, so check it first
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone().replace(tzinfo=None)
        return value.date()
    if isinstance(value, date):
        return value
    raise ValueError(f"expected a date or datetime, got {value!r}")


def _check_window(now, n):
    if now is None:
        raise ValueError("reference instant 'now' is required")
    if isinstance(n, bool) or not isinstance(n, int) or n <= 0:
        raise ValueError(f"window size must be a positive integer, got {n!r}")


def _window_too_long(n, unit, end):
    return ValueError(f"a window of {n} {unit}s ending {end.isoformat()} starts before {date.min.isoformat()}")


def shift_month(day, months):
    """Return the first day of the month `months` away from `day`'s month.

    The year is normalised explicitly, so January minus two months is
    November of the previous year.
    """
    year, month0 = divmod(day.year * 12 + (day.month - 1) + months, 12)
    if not date.min.year <= year <= date.max.year:
        raise ValueError(f"shifting {day.isoformat()} by {months} months leaves the supported years")
    return date(year, month0 + 1, 1)


# ---------------- COUNTS ----------------
def count_in_day(events, day):
    target = _as_date(day)
    return sum(1 for e in events if _as_date(e) == target)


def aggregate_by_day(events, now, n):
    """Counts for the `n` calendar days ending on `now`'s day, oldest first.

    Days without events are present with a count of 0.
    """
    _check_window(now, n)
    today = _as_date(now)
    if today.toordinal() - (n - 1) < date.min.toordinal():
        raise _window_too_long(n, "day", today)
    per_day = Counter(_as_date(e) for e in events)

    data = {}
    for offset in range(n - 1, -1, -1):
        day = date.fromordinal(today.toordinal() - offset)
        data[day] = per_day.get(day, 0)
    return data


def aggregate_by_month(events, now, n):
    """Counts for the `n` calendar months ending at `now`'s month, oldest first.

    Keys are the first day of each month.
    """
    _check_window(now, n)
    current = _as_date(now)
    if (current.year - date.min.year) * 12 + (current.month - 1) < n - 1:
        raise _window_too_long(n, "month", current)
    per_month = Counter((d.year, d.month) for d in map(_as_date, events))

    data = {}
    for offset in range(n - 1, -1, -1):
        month_start = shift_month(current, -offset)
        data[month_start] = per_month.get((month_start.year, month_start.month), 0)
    return data


# ---------------- SERIES ----------------
def build_series(bucket_map, order="asc", label_format=DAY_LABEL):
    if order not in ("asc", "desc"):
        raise ValueError(f"order must be 'asc' or 'desc', got {order!r}")

    keys = sorted(bucket_map, reverse=(order == "desc"))
    buckets = tuple(
        Bucket(label=k.strftime(label_format), start=k, count=bucket_map[k])
        for k in keys
    )
    return BucketSeries(buckets=buckets)


# ---------------- VIEWS (one per tab) ----------------
@dataclass(frozen=True)
class View:
    name: str
    tab: str
    title: str
    unit: str
    periods: int


VIEWS = {
    "daily": View("daily", "Daily", "Today's count", "day", 1),
    "weekly": View("weekly", "Weekly", "Total this week", "day", 7),
    "monthly": View("monthly", "Monthly", "Total last 30 days", "day", 30),
    "yearly": View("yearly", "Yearly", "Total last 12 months", "month", 12),
}


def get_view(name):
    try:
        return VIEWS[name]
    except KeyError:
        raise UnknownViewError(name) from None


def series_for_view(events, name, now):
    view = get_view(name)
    if view.unit == "month":
        return build_series(aggregate_by_month(events, now, view.periods), label_format=MONTH_LABEL)

    series = build_series(aggregate_by_day(events, now, view.periods))
    if view.periods == 1:
        # single bar reads better as "Today" than as a date
        only = series.buckets[0]
        series = BucketSeries(buckets=(Bucket("Today", only.start, only.count),))
    return series
