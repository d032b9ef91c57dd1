import logging
from typing import Iterable, List, Sequence

from utils.report_types import (
    AttendanceReport,
    BonusOrPenaltyEntry,
    TopicGrades,
    TraineeGPA,
)
from utils.reward_penalty_utils import accumulate_bonus_and_penalty

logger = logging.getLogger(__name__)

ACADEMIC_WEIGHT = 0.7
DISCIPLINE_WEIGHT = 0.3
BONUS_WEIGHT = 0.1
PENALTY_WEIGHT = 0.2

# (lower bound, level), checked top-down; bounds are inclusive.
GPA_LEVELS = (
    (0.93, "A+"),
    (0.86, "A"),
    (0.72, "B"),
    (0.60, "C"),
)
LOWEST_LEVEL = "D"


def classify_gpa(gpa: float) -> str:
    """Map a 0-1 GPA to its letter level."""
    for bound, level in GPA_LEVELS:
        if gpa >= bound:
            return level
    return LOWEST_LEVEL


def calculate_gpa(
    academic_mark: float, disciplinary_point: float, bonus: float, penalty: float
) -> float:
    # penalty is already negative
    return (
        academic_mark * ACADEMIC_WEIGHT
        + disciplinary_point * DISCIPLINE_WEIGHT
        + bonus * BONUS_WEIGHT
        + penalty * PENALTY_WEIGHT
    )


def academic_marks(topic_grades: TopicGrades) -> dict:
    """Final marks of each trainee on the 0-1 scale (mark / final max score)."""
    if topic_grades is None or topic_grades.is_empty:
        return {}
    max_score = topic_grades.final_marks_info.max_score
    if max_score <= 0:
        return {}
    return {m.trainee_id: m.score / max_score for m in topic_grades.final_marks}


def compose_trainee_gpas(
    trainee_ids: Sequence[int],
    topic_grades: TopicGrades,
    attendance_reports: Iterable[AttendanceReport],
    reward_and_penalty: Iterable[BonusOrPenaltyEntry],
) -> List[TraineeGPA]:
    """Merge the leaf reports into one GPA row per active trainee.

    Upstream rows keyed to trainees outside ``trainee_ids`` are dropped.
    """
    active = set(trainee_ids)

    marks = academic_marks(topic_grades)
    points = {}
    for report in attendance_reports or ():
        points[report.trainee_id] = report.disciplinary_point
    bonus_penalty = accumulate_bonus_and_penalty(reward_and_penalty or ())

    for source, keys in (
        ("academic", marks),
        ("attendance", points),
        ("reward/penalty", bonus_penalty),
    ):
        stray = set(keys) - active
        if stray:
            logger.debug(f"Ignoring {source} rows of inactive trainees {sorted(stray)}")

    rows = []
    for tid in trainee_ids:
        academic_mark = marks.get(tid, 0.0)
        disciplinary_point = points.get(tid, 0.0)
        bonus, penalty = bonus_penalty.get(tid, (0.0, 0.0))
        gpa = calculate_gpa(academic_mark, disciplinary_point, bonus, penalty)
        rows.append(
            TraineeGPA(
                trainee_id=tid,
                academic_mark=academic_mark,
                disciplinary_point=disciplinary_point,
                bonus=bonus,
                penalty=penalty,
                gpa=gpa,
                level=classify_gpa(gpa),
            )
        )
    return rows
