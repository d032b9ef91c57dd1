import logging
from collections import defaultdict
from datetime import date
from typing import Dict, Iterable, List, Optional, Sequence

import numpy as np

from utils.calendar_utils import Month, first_day, month_of
from utils.report_types import FeedbackRecord, FeedbackReport

logger = logging.getLogger(__name__)

CONTENT_FIELDS = (
    "topic_content",
    "topic_objective",
    "approriate_topic_level",
    "topic_usefulness",
    "training_material",
)
TRAINER_FIELDS = (
    "trainer_knowledge",
    "subject_coverage",
    "instruction_and_communicate",
    "trainer_support",
)
ORGANIZATION_FIELDS = ("logistics", "information_to_trainees", "admin_support")
FEEDBACK_FIELDS = CONTENT_FIELDS + TRAINER_FIELDS + ORGANIZATION_FIELDS


def average_dimensions(records: Sequence[FeedbackRecord]) -> Dict[str, float]:
    """Mean of each of the twelve dimensions; zeros when there are no records."""
    if not records:
        return {name: 0.0 for name in FEEDBACK_FIELDS}
    matrix = np.array(
        [[float(getattr(r, name) or 0) for name in FEEDBACK_FIELDS] for r in records],
        dtype=float,
    )
    means = matrix.mean(axis=0)
    return {name: float(means[i]) for i, name in enumerate(FEEDBACK_FIELDS)}


def _mean(averages: Dict[str, float], names) -> float:
    return sum(averages[n] for n in names) / len(names)


def build_monthly_feedback_report(
    averages: Dict[str, float], report_at: Optional[date]
) -> FeedbackReport:
    """Category scores of one month.

    The trainer category is the sum of its four dimensions while the other
    two categories are means. The reported topic_usefulness repeats the
    topic_content average; the categories use the real value.
    """
    training_programs = _mean(averages, CONTENT_FIELDS)
    trainer = sum(averages[n] for n in TRAINER_FIELDS)
    organization = _mean(averages, ORGANIZATION_FIELDS)
    dimensions = dict(averages)
    dimensions["topic_usefulness"] = averages["topic_content"]
    return FeedbackReport(
        **dimensions,
        training_programs=training_programs,
        trainer=trainer,
        organization=organization,
        content_eval=training_programs,
        trainer_eval=trainer,
        organize_eval=organization,
        ojt_eval=_mean(averages, FEEDBACK_FIELDS),
        average_score=(training_programs + trainer + organization) / 3,
        report_at=report_at,
        is_summary=False,
    )


def build_summary_feedback_report(monthly: Sequence[FeedbackReport]) -> FeedbackReport:
    """All-time row: dimension means over the monthly rows, categories as means."""
    averages = {
        name: sum(getattr(r, name) for r in monthly) / len(monthly)
        for name in FEEDBACK_FIELDS
    }
    training_programs = _mean(averages, CONTENT_FIELDS)
    trainer = _mean(averages, TRAINER_FIELDS)
    organization = _mean(averages, ORGANIZATION_FIELDS)
    return FeedbackReport(
        **averages,
        training_programs=training_programs,
        trainer=trainer,
        organization=organization,
        content_eval=training_programs,
        trainer_eval=trainer,
        organize_eval=organization,
        ojt_eval=_mean(averages, FEEDBACK_FIELDS),
        average_score=(training_programs + trainer + organization) / 3,
        report_at=None,
        is_summary=True,
    )


def group_by_month(records: Iterable[FeedbackRecord]) -> Dict[Month, List[FeedbackRecord]]:
    grouped = defaultdict(list)
    for record in records:
        grouped[month_of(record.created_at)].append(record)
    return grouped


def compute_feedback_reports(
    records: Iterable[FeedbackRecord],
    months: Sequence[Month],
    month: Optional[Month] = None,
) -> List[FeedbackReport]:
    """Feedback scorecards of a class.

    With ``month`` a single row for that month is returned. Otherwise one
    row per month of the window followed by the summary row.
    """
    grouped = group_by_month(records)
    if month is not None:
        averages = average_dimensions(grouped.get(month, []))
        return [build_monthly_feedback_report(averages, first_day(month))]

    reports = [
        build_monthly_feedback_report(average_dimensions(grouped.get(m, [])), first_day(m))
        for m in months
    ]
    if not reports:
        return []
    reports.append(build_summary_feedback_report(reports))
    logger.debug(f"Computed feedback report over {len(months)} months")
    return reports
