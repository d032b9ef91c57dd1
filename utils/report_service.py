"""Reporting engine entry point.

A ``ReportService`` reads through a ``ReportStore`` and feeds the pure
aggregators. Leaf reports (attendance, topic grades, reward/penalty) have no
dependency on each other and can be gathered on a thread pool; the GPA
composer and the summaries wait for all of them.
"""
import logging
import time
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from contextlib import nullcontext
from datetime import date
from typing import Callable, Dict, List, Optional

from utils.attendance_utils import (
    compute_attendance_report,
    compute_monthly_attendance_reports,
    compute_total_attendance_reports,
)
from utils.calendar_utils import (
    Month,
    class_months,
    first_day,
    iter_days,
    month_range,
    window_range,
)
from utils.errors import ReportTimeoutError
from utils.feedback_utils import compute_feedback_reports, group_by_month
from utils.gpa_utils import compose_trainee_gpas
from utils.grade_calculation import compute_topic_grades
from utils.report_store import ReportStore
from utils.report_types import (
    AttendanceReport,
    BonusOrPenaltyEntry,
    CheckpointReport,
    ClassStatusReport,
    DateRange,
    FeedbackRecord,
    FeedbackReport,
    MonthlyAttendance,
    TopicGrades,
    TraineeGPA,
    TraineeInfo,
)
from utils.reward_penalty_utils import filter_reward_and_penalty
from utils.summary_utils import summarize_checkpoints, summarize_class_status

logger = logging.getLogger(__name__)


class _DeadlineStore:
    """Store proxy that refuses reads once the deadline has passed."""

    def __init__(self, store: ReportStore, deadline: float):
        self._store = store
        self._deadline = deadline

    def remaining(self) -> float:
        return self._deadline - time.monotonic()

    def __getattr__(self, name):
        attr = getattr(self._store, name)
        if not callable(attr):
            return attr

        def guarded(*args, **kwargs):
            if self.remaining() <= 0:
                raise ReportTimeoutError(f"Deadline exceeded before store read {name}")
            return attr(*args, **kwargs)

        return guarded


class ReportService:
    """Computes class reports from the records of a ``ReportStore``.

    ``max_workers`` > 1 gathers leaf reports concurrently; every worker runs
    inside ``worker_context()`` (e.g. a fresh Flask app context so each thread
    gets its own database session). ``deadline_seconds`` bounds all store
    reads of one report call.
    """

    def __init__(
        self,
        store: ReportStore,
        max_workers: int = 1,
        deadline_seconds: Optional[float] = None,
        worker_context: Optional[Callable] = None,
    ):
        self.store = store
        self.max_workers = max(1, int(max_workers or 1))
        self.deadline_seconds = deadline_seconds
        self.worker_context = worker_context or nullcontext

    # -----------------------------
    # Plumbing
    # -----------------------------
    def _reader(self):
        if self.deadline_seconds is None:
            return self.store
        return _DeadlineStore(self.store, time.monotonic() + self.deadline_seconds)

    def _in_worker(self, task):
        with self.worker_context():
            return task()

    def _gather(self, reader, *tasks):
        """Run independent tasks, serially or on a pool; first failure wins.

        The caller stops waiting at the deadline; workers still running are
        abandoned and pending ones cancelled.
        """
        if self.max_workers <= 1 or len(tasks) < 2:
            return [task() for task in tasks]

        timeout = reader.remaining() if isinstance(reader, _DeadlineStore) else None
        pool = ThreadPoolExecutor(max_workers=min(self.max_workers, len(tasks)))
        try:
            futures = [pool.submit(self._in_worker, task) for task in tasks]
            done, pending = wait(
                futures,
                timeout=None if timeout is None else max(0, timeout),
                return_when=FIRST_EXCEPTION,
            )
            for future in futures:
                if future in done and future.exception() is not None:
                    raise future.exception()
            if pending:
                raise ReportTimeoutError(
                    f"Deadline exceeded waiting for {len(pending)} report parts"
                )
            return [f.result() for f in futures]
        finally:
            pool.shutdown(wait=False, cancel_futures=True)

    @staticmethod
    def _months(reader, class_id: int) -> List[Month]:
        window = reader.get_class_window(class_id)
        if window is None:
            logger.info(f"Class {class_id} not found; nothing to report")
            return []
        return class_months(window.start_day, window.end_day)

    # -----------------------------
    # Roster and class status
    # -----------------------------
    def get_trainees_info(self, class_id: int) -> List[TraineeInfo]:
        return self._reader().list_trainees(class_id)

    def get_class_status_report(self, class_id: int) -> ClassStatusReport:
        trainees = self._reader().list_trainees(class_id)
        return summarize_class_status(t.status for t in trainees)

    # -----------------------------
    # Attendance
    # -----------------------------
    def get_attendance_info(
        self, class_id: int, month: Optional[Month] = None
    ) -> Dict[date, List[tuple]]:
        """Per-day statuses of every active trainee.

        Days on which any active trainee has no record are left out.
        """
        reader = self._reader()
        trainee_ids = reader.list_active_trainees(class_id)
        if not trainee_ids:
            return {}
        if month is not None:
            window = month_range(*month)
        else:
            class_window = reader.get_class_window(class_id)
            if class_window is None:
                return {}
            window = window_range(class_window.start_day, class_window.end_day)

        statuses = {}
        for record in reader.list_attendance(class_id, date_range=window):
            statuses.setdefault(record.date, {})[record.trainee_id] = record.status

        info = {}
        for day in iter_days(window.start.date(), window.end.date()):
            day_statuses = statuses.get(day, {})
            if any(tid not in day_statuses for tid in trainee_ids):
                continue
            info[day] = [(tid, day_statuses[tid]) for tid in trainee_ids]
        return info

    def get_attendance_report(
        self, class_id: int, trainee_id: int, month: int, year: int
    ) -> AttendanceReport:
        records = self._reader().list_attendance(
            class_id, trainee_id=trainee_id, date_range=month_range(year, month)
        )
        return compute_attendance_report(trainee_id, records)

    def get_attendance_report_each_month(
        self, class_id: int, month: Month
    ) -> MonthlyAttendance:
        reader = self._reader()
        trainee_ids = reader.list_active_trainees(class_id)
        records = (
            reader.list_attendance(class_id, date_range=month_range(*month))
            if trainee_ids
            else []
        )
        return {first_day(month): compute_monthly_attendance_reports(trainee_ids, records, month)}

    def get_total_attendance_reports(self, class_id: int) -> List[AttendanceReport]:
        return self._total_attendance(self._reader(), class_id)

    def _total_attendance(self, reader, class_id: int) -> List[AttendanceReport]:
        trainee_ids = reader.list_active_trainees(class_id)
        if not trainee_ids:
            return []
        window = reader.get_class_window(class_id)
        if window is None:
            return []
        months = class_months(window.start_day, window.end_day)
        records = []
        if months:
            records = reader.list_attendance(
                class_id, date_range=window_range(first_day(months[0]), _last_day(months[-1]))
            )
        return compute_total_attendance_reports(trainee_ids, records, months)

    # -----------------------------
    # Feedback
    # -----------------------------
    def get_feedback_report(
        self, class_id: int, month: Optional[Month] = None
    ) -> List[FeedbackReport]:
        reader = self._reader()
        if month is not None:
            if reader.get_class_window(class_id) is None:
                return []
            records = reader.list_feedback(class_id, date_range=month_range(*month))
            return compute_feedback_reports(records, [month], month=month)

        months = self._months(reader, class_id)
        if not months:
            return []
        records = reader.list_feedback(
            class_id, date_range=window_range(first_day(months[0]), _last_day(months[-1]))
        )
        return compute_feedback_reports(records, months)

    def get_trainee_feedbacks(
        self, class_id: int, month: Optional[Month] = None
    ) -> List[FeedbackRecord]:
        """Raw feedback of active trainees; one (the first) per trainee for a month."""
        reader = self._reader()
        active = reader.list_active_trainees(class_id)
        if not active:
            return []
        window = month_range(*month) if month is not None else None
        active_ids = set(active)
        records = [
            r for r in reader.list_feedback(class_id, date_range=window) if r.trainee_id in active_ids
        ]
        if month is None:
            return records
        first = {}
        for record in records:
            first.setdefault(record.trainee_id, record)
        return [first[tid] for tid in active if tid in first]

    def get_all_trainee_feedbacks(self, class_id: int) -> Dict[date, List[FeedbackRecord]]:
        reader = self._reader()
        months = self._months(reader, class_id)
        if not months:
            return {}
        active = set(reader.list_active_trainees(class_id))
        records = reader.list_feedback(
            class_id, date_range=window_range(first_day(months[0]), _last_day(months[-1]))
        )
        grouped = group_by_month(r for r in records if r.trainee_id in active)
        return {first_day(m): grouped.get(m, []) for m in months}

    # -----------------------------
    # Grades, reward/penalty, GPA
    # -----------------------------
    def get_topic_grades(self, class_id: int) -> TopicGrades:
        return self._topic_grades(self._reader(), class_id)

    def _topic_grades(self, reader, class_id: int) -> TopicGrades:
        class_modules = reader.list_class_modules(class_id)
        if not class_modules:
            return TopicGrades()
        modules = {cm.module_id: reader.get_module(cm.module_id) for cm in class_modules}
        marks = reader.list_marks(class_id)
        months = self._months(reader, class_id)
        return compute_topic_grades(class_modules, modules, marks, months)

    def get_reward_and_penalty(
        self, class_id: int, window: Optional[DateRange] = None
    ) -> List[BonusOrPenaltyEntry]:
        return self._reward_and_penalty(self._reader(), class_id, window)

    def _reward_and_penalty(self, reader, class_id, window) -> List[BonusOrPenaltyEntry]:
        trainee_ids = reader.list_active_trainees(class_id)
        entries = []
        for tid in trainee_ids:
            entries.extend(reader.list_bonus_penalty(tid, date_range=window))
        return filter_reward_and_penalty(entries, trainee_ids, window)

    def get_trainee_gpas(self, class_id: int, at: Optional[Month] = None) -> List[TraineeGPA]:
        return self._trainee_gpas(self._reader(), class_id, at)

    def _trainee_gpas(self, reader, class_id: int, at: Optional[Month]) -> List[TraineeGPA]:
        trainee_ids = reader.list_active_trainees(class_id)
        if not trainee_ids:
            return []
        window = month_range(*at) if at is not None else None
        topic_grades, attendance, reward_and_penalty = self._gather(
            reader,
            lambda: self._topic_grades(reader, class_id),
            lambda: self._total_attendance(reader, class_id),
            lambda: self._reward_and_penalty(reader, class_id, window),
        )
        gpas = compose_trainee_gpas(trainee_ids, topic_grades, attendance, reward_and_penalty)
        logger.debug(f"Computed GPA for {len(gpas)} trainees of class {class_id}")
        return gpas

    def get_checkpoint_report(self, class_id: int) -> Optional[CheckpointReport]:
        return summarize_checkpoints(self.get_trainee_gpas(class_id))

    # -----------------------------
    # Export bundle
    # -----------------------------
    def get_class_report_data(self, class_id: int, at: Optional[Month] = None) -> dict:
        """Everything the class report spreadsheet is filled from."""
        reader = self._reader()
        window = month_range(*at) if at is not None else None
        trainees, reward_and_penalty = self._gather(
            reader,
            lambda: reader.list_trainees(class_id),
            lambda: self._reward_and_penalty(reader, class_id, window),
        )
        return {
            "trainees": trainees,
            "reward_and_penalty": reward_and_penalty,
            "gpas": self._trainee_gpas(reader, class_id, at),
        }


def _last_day(month: Month) -> date:
    return month_range(*month).end.date()


