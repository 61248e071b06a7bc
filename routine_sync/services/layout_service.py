"""
Interval layout service.

Clusters overlapping time intervals and packs each cluster into the
fewest non-overlapping lateral columns or radial rings. All functions are
pure and safe to call concurrently.
"""

from __future__ import annotations

import heapq
from typing import Iterable, Optional, Sequence

from routine_sync.core.exceptions import InvalidIntervalError
from routine_sync.models.enums import DayHalf, TieBreak
from routine_sync.models.layout import RadialBand, RadialGeometry, RectGeometry, TimeInterval

HALF_DAY = 720
DEFAULT_BOUND = 1440
FREE_PREFIX = "free:"

DEFAULT_RADIAL_BANDS: tuple[RadialBand, ...] = (
    RadialBand(inner_radius=33, outer_radius=44),
    RadialBand(inner_radius=21, outer_radius=32),
    RadialBand(inner_radius=9, outer_radius=20),
)


def overlaps(a: TimeInterval, b: TimeInterval) -> bool:
    """Half-open overlap: touching intervals do not overlap."""
    return a.end > b.start and a.start < b.end


def validate_intervals(intervals: Iterable[TimeInterval], bound: int = DEFAULT_BOUND) -> list[TimeInterval]:
    """
    Check ids are unique and every interval satisfies ``0 <= start < end <= bound``.

    Raises:
        InvalidIntervalError: On the first offending interval
    """
    items = list(intervals)
    seen: set[str] = set()
    for interval in items:
        if interval.id in seen:
            raise InvalidIntervalError(f"Duplicate interval id: {interval.id}")
        seen.add(interval.id)
        if interval.end <= interval.start:
            raise InvalidIntervalError(
                f"Interval {interval.id} ends before it starts: ({interval.start}, {interval.end})"
            )
        if interval.start < 0 or interval.end > bound:
            raise InvalidIntervalError(
                f"Interval {interval.id} outside [0, {bound}]: ({interval.start}, {interval.end})"
            )
    return items


def sort_key(tie_break: TieBreak):
    """Ordering used inside a cluster; the id keeps the order total."""
    if tie_break == TieBreak.SHORTEST_FIRST:
        return lambda i: (i.end - i.start, i.start, i.end, i.id)
    return lambda i: (i.start, i.end, i.id)


def cluster_intervals(intervals: Iterable[TimeInterval]) -> list[list[TimeInterval]]:
    """
    Connected components of the overlap graph.

    A single sweep over start-sorted intervals: an interval joins the open
    cluster while it starts before the cluster's furthest end. Clusters come
    back in time order, members in canonical (start, end, id) order.
    """
    ordered = sorted(intervals, key=sort_key(TieBreak.START_END))
    clusters: list[list[TimeInterval]] = []
    current: list[TimeInterval] = []
    current_end = 0
    for interval in ordered:
        if current and interval.start < current_end:
            current.append(interval)
            current_end = max(current_end, interval.end)
        else:
            if current:
                clusters.append(current)
            current = [interval]
            current_end = interval.end
    if current:
        clusters.append(current)
    return clusters


def assign_columns(
    cluster: Sequence[TimeInterval], tie_break: TieBreak = TieBreak.START_END
) -> tuple[dict[str, int], int]:
    """
    Greedy first-fit column assignment for one cluster.

    Each column keeps a frontier (end of its last interval); an interval goes
    to the lowest column whose frontier is <= its start. In start order this
    uses exactly as many columns as the cluster's maximum concurrency.

    Returns:
        Tuple of (column index per id, total columns)
    """
    ordered = sorted(cluster, key=sort_key(tie_break))
    columns: dict[str, int] = {}

    if tie_break == TieBreak.START_END:
        # Starts are non-decreasing, so a column is free exactly when its
        # frontier has passed; the lowest free index is first-fit.
        active: list[tuple[int, int]] = []
        free: list[int] = []
        total = 0
        for interval in ordered:
            while active and active[0][0] <= interval.start:
                _, column = heapq.heappop(active)
                heapq.heappush(free, column)
            if free:
                column = heapq.heappop(free)
            else:
                column = total
                total += 1
            heapq.heappush(active, (interval.end, column))
            columns[interval.id] = column
        return columns, total

    frontiers: list[int] = []
    for interval in ordered:
        for column, frontier in enumerate(frontiers):
            if frontier <= interval.start:
                frontiers[column] = interval.end
                break
        else:
            column = len(frontiers)
            frontiers.append(interval.end)
        columns[interval.id] = column
    return columns, len(frontiers)


def max_concurrency(intervals: Iterable[TimeInterval]) -> int:
    """Largest number of simultaneously active intervals (ends sort before starts)."""
    events: list[tuple[int, int]] = []
    for interval in intervals:
        events.append((interval.start, 1))
        events.append((interval.end, -1))
    events.sort()
    active = best = 0
    for _, delta in events:
        active += delta
        best = max(best, active)
    return best


def layout_columns(
    intervals: Iterable[TimeInterval],
    tie_break: TieBreak = TieBreak.START_END,
    bound: int = DEFAULT_BOUND,
) -> dict[str, tuple[int, int]]:
    """Column index and the cluster's column count for every interval id."""
    return _place_columns(validate_intervals(intervals, bound), tie_break)


def _place_columns(
    items: Sequence[TimeInterval], tie_break: TieBreak
) -> dict[str, tuple[int, int]]:
    placement: dict[str, tuple[int, int]] = {}
    for cluster in cluster_intervals(items):
        columns, total = assign_columns(cluster, tie_break)
        for interval_id, column in columns.items():
            placement[interval_id] = (column, total)
    return placement


def layout_rectangular(
    intervals: Iterable[TimeInterval],
    tie_break: TieBreak = TieBreak.START_END,
    scale: float = 1.0,
    bound: int = DEFAULT_BOUND,
) -> dict[str, RectGeometry]:
    """
    Rectangular geometry per interval id.

    Args:
        intervals: Intervals to lay out
        tie_break: Ordering rule inside clusters
        scale: Length units per minute along the time axis
        bound: Upper bound of the time axis in minutes

    Returns:
        Mapping of interval id to offset/length along time and lateral
        position/width in [0, 1]
    """
    items = validate_intervals(intervals, bound)
    placement = _place_columns(items, tie_break)
    geometry: dict[str, RectGeometry] = {}
    for interval in items:
        column, total = placement[interval.id]
        width = 1.0 / total
        geometry[interval.id] = RectGeometry(
            offset=interval.start * scale,
            length=(interval.end - interval.start) * scale,
            lateral_position=column * width,
            lateral_width=width,
            column=column,
            total_columns=total,
        )
    return geometry


def layout_radial(
    intervals: Iterable[TimeInterval],
    bands: Optional[Sequence[RadialBand]] = None,
    tie_break: TieBreak = TieBreak.START_END,
    bound: int = DEFAULT_BOUND,
) -> dict[str, RadialGeometry]:
    """
    Radial geometry per interval id.

    Column ``i`` maps to ``bands[i]`` (outermost first). Columns beyond the
    last band collapse into the innermost band.
    """
    bands = list(bands or DEFAULT_RADIAL_BANDS)
    if not bands:
        raise InvalidIntervalError("At least one radial band is required")
    innermost = len(bands) - 1
    geometry: dict[str, RadialGeometry] = {}
    for interval_id, (column, _) in layout_columns(intervals, tie_break, bound).items():
        ring = min(column, innermost)
        geometry[interval_id] = RadialGeometry(
            ring_index=ring,
            inner_radius=bands[ring].inner_radius,
            outer_radius=bands[ring].outer_radius,
        )
    return geometry


def half_day(intervals: Iterable[TimeInterval], half: DayHalf) -> list[TimeInterval]:
    """Intervals starting in the given half of the day."""
    if half == DayHalf.AM:
        return [i for i in intervals if i.start < HALF_DAY]
    return [i for i in intervals if i.start >= HALF_DAY]


def half_day_range(half: DayHalf) -> tuple[int, int]:
    return (0, HALF_DAY) if half == DayHalf.AM else (HALF_DAY, DEFAULT_BOUND)


def fill_gaps(
    intervals: Iterable[TimeInterval], range_start: int, range_end: int
) -> list[TimeInterval]:
    """
    Clip intervals to ``[range_start, range_end)`` and cover the rest with free intervals.

    Intervals falling entirely outside the range are dropped. Free intervals
    get ids ``free:{start}-{end}`` so repeated calls produce the same output.
    """
    if range_end <= range_start:
        raise InvalidIntervalError(f"Empty range: ({range_start}, {range_end})")

    filled: list[TimeInterval] = []
    cursor = range_start
    for interval in sorted(intervals, key=sort_key(TieBreak.START_END)):
        start = max(range_start, min(range_end, interval.start))
        end = max(range_start, min(range_end, interval.end))
        if end <= start:
            continue
        if start > cursor:
            filled.append(_free(cursor, start))
        if (start, end) == (interval.start, interval.end):
            filled.append(interval)
        else:
            filled.append(interval.model_copy(update={"start": start, "end": end}))
        cursor = max(cursor, end)
    if cursor < range_end:
        filled.append(_free(cursor, range_end))
    return filled


def is_free(interval: TimeInterval) -> bool:
    return interval.id.startswith(FREE_PREFIX)


def _free(start: int, end: int) -> TimeInterval:
    return TimeInterval(id=f"{FREE_PREFIX}{start}-{end}", start=start, end=end, label="free")
