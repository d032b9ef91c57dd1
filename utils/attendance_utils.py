import logging
from collections import defaultdict
from enum import Enum
from typing import Dict, Iterable, List, Sequence

from utils.calendar_utils import Month, month_of
from utils.report_types import AttendanceRecord, AttendanceReport

logger = logging.getLogger(__name__)


class AttendanceStatus(str, Enum):
    PRESENT = "P"
    ABSENT = "A"
    ABSENT_NO_PERMISSION = "An"
    LATE_IN = "L"
    LATE_IN_NO_PERMISSION = "Ln"
    EARLY_OUT = "E"
    EARLY_OUT_NO_PERMISSION = "En"


ABSENT_CODES = frozenset(
    {AttendanceStatus.ABSENT.value, AttendanceStatus.ABSENT_NO_PERMISSION.value}
)
LATE_OR_EARLY_CODES = frozenset(
    {
        AttendanceStatus.LATE_IN.value,
        AttendanceStatus.LATE_IN_NO_PERMISSION.value,
        AttendanceStatus.EARLY_OUT.value,
        AttendanceStatus.EARLY_OUT_NO_PERMISSION.value,
    }
)
NO_PERMISSION_CODES = frozenset(
    {
        AttendanceStatus.ABSENT_NO_PERMISSION.value,
        AttendanceStatus.LATE_IN_NO_PERMISSION.value,
        AttendanceStatus.EARLY_OUT_NO_PERMISSION.value,
    }
)

# Every value calculate_disciplinary_point can return.
DISCIPLINARY_POINTS = (0.0, 0.2, 0.5, 0.6, 0.8, 1.0)


def calculate_disciplinary_point(violation_rate: float, no_permission_rate: float) -> float:
    """Tiered disciplinary point; the first matching tier wins."""
    if violation_rate <= 0.05:
        return 1.0
    if violation_rate <= 0.2:
        return 0.8
    if violation_rate <= 0.3:
        return 0.6
    if violation_rate < 0.5:
        return 0.5
    if no_permission_rate >= 0.2:
        return 0.0
    return 0.2


def compute_attendance_report(
    trainee_id: int, records: Iterable[AttendanceRecord]
) -> AttendanceReport:
    """Attendance report of one trainee over the given records (one month)."""
    absent = late_or_early = no_permission = total = 0
    for record in records:
        total += 1
        if record.status in ABSENT_CODES:
            absent += 1
        elif record.status in LATE_OR_EARLY_CODES:
            late_or_early += 1
        if record.status in NO_PERMISSION_CODES:
            no_permission += 1

    violations = absent + late_or_early
    no_permission_rate = no_permission / violations if violations else 0.0
    # Two late-ins/early-outs weigh as one absence.
    violation_rate = (late_or_early // 2 + absent) / total if total else 0.0

    return AttendanceReport(
        trainee_id=trainee_id,
        number_of_absent=absent,
        number_of_late_in_and_early_out=late_or_early,
        no_permission_rate=no_permission_rate,
        disciplinary_point=calculate_disciplinary_point(
            violation_rate, no_permission_rate
        ),
    )


def group_by_trainee_and_month(
    records: Iterable[AttendanceRecord],
) -> Dict[int, Dict[Month, List[AttendanceRecord]]]:
    grouped = defaultdict(lambda: defaultdict(list))
    for record in records:
        grouped[record.trainee_id][month_of(record.date)].append(record)
    return grouped


def compute_monthly_attendance_reports(
    trainee_ids: Sequence[int], records: Iterable[AttendanceRecord], month: Month
) -> List[AttendanceReport]:
    """One report per trainee for a single month, in trainee order."""
    grouped = group_by_trainee_and_month(records)
    return [
        compute_attendance_report(tid, grouped.get(tid, {}).get(month, []))
        for tid in trainee_ids
    ]


def compute_total_attendance_reports(
    trainee_ids: Sequence[int],
    records: Iterable[AttendanceRecord],
    months: Sequence[Month],
) -> List[AttendanceReport]:
    """Class-wide attendance over every month of the window.

    Counts are summed across months; no-permission rate and disciplinary
    point are averaged over the number of months.
    """
    grouped = group_by_trainee_and_month(records)
    reports = []
    for tid in trainee_ids:
        by_month = grouped.get(tid, {})
        monthly = [compute_attendance_report(tid, by_month.get(m, [])) for m in months]
        if not monthly:
            reports.append(AttendanceReport(trainee_id=tid))
            continue
        reports.append(
            AttendanceReport(
                trainee_id=tid,
                number_of_absent=sum(r.number_of_absent for r in monthly),
                number_of_late_in_and_early_out=sum(
                    r.number_of_late_in_and_early_out for r in monthly
                ),
                no_permission_rate=sum(r.no_permission_rate for r in monthly)
                / len(monthly),
                disciplinary_point=sum(r.disciplinary_point for r in monthly)
                / len(monthly),
            )
        )
    logger.debug(
        f"Computed total attendance for {len(reports)} trainees over {len(months)} months"
    )
    return reports
