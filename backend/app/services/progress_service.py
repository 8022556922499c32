"""Progress calculation.

Pure functions only. Percentages use round-half-up integer arithmetic so
12.5% reports as 13, matching what users see in the dashboard.
"""

from collections.abc import Iterable, Sequence

from app.schemas.roadmap import MilestoneCrossing, ProgressSnapshot, Roadmap, TrackableItem

FIFTY_PERCENT = 50
HUNDRED_PERCENT = 100


def _round_half_up(numerator: int, denominator: int) -> int:
    """round(numerator / denominator) with halves rounded up, no floats."""
    return (2 * numerator + denominator) // (2 * denominator)


def percentage(items: Iterable[TrackableItem]) -> int:
    """Completion percentage in [0, 100]; 0 when there are no items."""
    total = 0
    completed = 0
    for item in items:
        total += 1
        if item.completed:
            completed += 1
    if total == 0:
        return 0
    return _round_half_up(100 * completed, total)


def crossed_milestone(prev: int | None, next_: int) -> MilestoneCrossing:
    """Report thresholds crossed moving from ``prev`` to ``next_``.

    A threshold fires exactly when ``prev < threshold <= next_``, so
    recomputing with unchanged input never fires again. ``prev=None``
    (first load of a view) never fires.
    """
    if prev is None:
        return MilestoneCrossing()
    return MilestoneCrossing(
        fifty_percent=prev < FIFTY_PERCENT <= next_,
        hundred_percent=prev < HUNDRED_PERCENT <= next_,
    )


def snapshot(items: Sequence[TrackableItem], previous: int | None = None) -> ProgressSnapshot:
    """Percentage plus the milestone crossing relative to ``previous``."""
    pct = percentage(items)
    return ProgressSnapshot(
        percentage=pct,
        completed=sum(1 for i in items if i.completed),
        total=len(items),
        milestone=crossed_milestone(previous, pct),
    )


def average_progress(roadmaps: Sequence[Roadmap]) -> int:
    """Mean of per-roadmap percentages, rounded half up.

    Roadmaps without items count as 0%.
    """
    if not roadmaps:
        return 0
    total = sum(percentage(r.items) for r in roadmaps)
    return _round_half_up(total, len(roadmaps))
