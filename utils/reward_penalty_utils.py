from collections import defaultdict
from typing import Collection, Dict, Iterable, List, Optional, Tuple

from utils.report_types import BonusOrPenaltyEntry, DateRange

# Raw ledger points are scaled down by this divisor before entering a GPA.
POINT_DIVISOR = 10


def filter_reward_and_penalty(
    entries: Iterable[BonusOrPenaltyEntry],
    trainee_ids: Collection[int],
    window: Optional[DateRange] = None,
) -> List[BonusOrPenaltyEntry]:
    """Entries of the given trainees inside the window, by trainee then date."""
    allowed = set(trainee_ids)
    kept = [
        e
        for e in entries
        if e.trainee_id in allowed and (window is None or e.created_at in window)
    ]
    return sorted(kept, key=lambda e: (e.trainee_id, e.created_at))


def accumulate_bonus_and_penalty(
    entries: Iterable[BonusOrPenaltyEntry],
) -> Dict[int, Tuple[float, float]]:
    """Per trainee (bonus, penalty) on the GPA scale.

    Positive points accumulate as bonus, the rest as a negative penalty.
    """
    totals = defaultdict(lambda: [0.0, 0.0])
    for entry in entries:
        scaled = float(entry.point or 0) / POINT_DIVISOR
        if scaled > 0:
            totals[entry.trainee_id][0] += scaled
        else:
            totals[entry.trainee_id][1] += scaled
    return {tid: (bonus, penalty) for tid, (bonus, penalty) in totals.items()}
