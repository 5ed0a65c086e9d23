"""
groupplan/features/plans/windows.py

Aggregates every participant's entries on a plan into common availability
windows: maximal spans during which one fixed set of users is available.
"""

from collections import defaultdict
from typing import Dict, FrozenSet, List, Sequence, Tuple

from groupplan.models.plan import AvailabilityWindow, EntryRecord
from groupplan.models.user import User


def _merge_spans(spans: List[Tuple[int, int]]) -> List[Tuple[int, int]]:
    """Merge sorted half-open spans that touch or overlap."""
    merged: List[Tuple[int, int]] = []
    for start, end in sorted(spans):
        if merged and start <= merged[-1][1]:
            if end > merged[-1][1]:
                merged[-1] = (merged[-1][0], end)
        else:
            merged.append((start, end))
    return merged


def find_common_windows(entries: Sequence[EntryRecord], min_seconds: int = 0) -> List[AvailabilityWindow]:
    """Return availability windows at least `min_seconds` long.

    Windows are ordered by participant count (most first), then by start.
    """
    users: Dict[int, User] = {}
    spans_by_user: Dict[int, List[Tuple[int, int]]] = defaultdict(list)
    for entry in entries:
        if entry.duration_seconds <= 0:
            continue
        users[entry.user.id] = entry.user
        spans_by_user[entry.user.id].append((entry.start_time_unix, entry.end_time_unix))

    # (time, delta, user_id) boundaries of every merged span
    events: Dict[int, List[Tuple[int, int]]] = defaultdict(list)
    for user_id, spans in spans_by_user.items():
        for start, end in _merge_spans(spans):
            events[start].append((1, user_id))
            events[end].append((-1, user_id))

    segments: List[Tuple[int, int, FrozenSet[int]]] = []
    active: set = set()
    points = sorted(events)
    for index, point in enumerate(points[:-1]):
        for delta, user_id in events[point]:
            if delta > 0:
                active.add(user_id)
            else:
                active.discard(user_id)
        if not active:
            continue
        next_point = points[index + 1]
        current = frozenset(active)
        if segments and segments[-1][1] == point and segments[-1][2] == current:
            segments[-1] = (segments[-1][0], next_point, current)
        else:
            segments.append((point, next_point, current))

    windows = [
        AvailabilityWindow(
            start_at_unix=start,
            duration_seconds=end - start,
            participant_count=len(members),
            participants=[users[user_id].public() for user_id in sorted(members)],
        )
        for start, end, members in segments
        if end - start >= max(min_seconds, 1)
    ]
    windows.sort(key=lambda window: (-window.participant_count, window.start_at_unix))
    return windows
