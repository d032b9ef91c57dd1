import time
from datetime import date

import pytest

from conftest import FakeReportStore
from utils.calendar_utils import month_range
from utils.errors import ReportStoreError, ReportTimeoutError
from utils.report_service import ReportService
from utils.report_types import CheckpointReport, ClassStatusReport


def test_total_attendance_reports(fake_store):
    reports = ReportService(fake_store).get_total_attendance_reports(1)
    assert [r.trainee_id for r in reports] == [1, 2]
    assert reports[0].number_of_absent == 1
    assert reports[0].no_permission_rate == pytest.approx(0.25)
    assert reports[0].disciplinary_point == pytest.approx(1.0)
    assert reports[1].number_of_absent == 5
    assert reports[1].no_permission_rate == pytest.approx(0.5)
    assert reports[1].disciplinary_point == pytest.approx(0.5)


def test_attendance_report_of_one_month(fake_store):
    service = ReportService(fake_store)
    report = service.get_attendance_report(1, 2, month=1, year=2024)
    assert report.number_of_absent == 5
    monthly = service.get_attendance_report_each_month(1, (2024, 2))
    assert list(monthly) == [date(2024, 2, 1)]
    assert [r.disciplinary_point for r in monthly[date(2024, 2, 1)]] == [1.0, 1.0]


def test_attendance_info_skips_incomplete_days(fake_store):
    info = ReportService(fake_store).get_attendance_info(1, month=(2024, 1))
    assert list(info) == [date(2024, 1, d) for d in range(2, 12)]
    assert info[date(2024, 1, 2)] == [(1, "A"), (2, "An")]


def test_feedback_report(fake_store):
    reports = ReportService(fake_store).get_feedback_report(1)
    assert len(reports) == 3
    assert reports[0].trainer == pytest.approx(12)
    assert reports[-1].is_summary


def test_trainee_feedbacks(fake_store):
    service = ReportService(fake_store)
    assert [f.trainee_id for f in service.get_trainee_feedbacks(1, month=(2024, 1))] == [1, 2]
    assert service.get_trainee_feedbacks(1, month=(2024, 2)) == []
    grouped = service.get_all_trainee_feedbacks(1)
    assert len(grouped[date(2024, 1, 1)]) == 2
    assert grouped[date(2024, 2, 1)] == []


def test_reward_and_penalty_window(fake_store):
    service = ReportService(fake_store)
    assert len(service.get_reward_and_penalty(1)) == 2
    [entry] = service.get_reward_and_penalty(1, month_range(2024, 2))
    assert entry.point == -2


def test_trainee_gpas(fake_store):
    gpas = ReportService(fake_store).get_trainee_gpas(1)
    assert [(g.trainee_id, g.level) for g in gpas] == [(1, "B"), (2, "D")]
    assert gpas[0].gpa == pytest.approx(0.842)
    assert gpas[1].gpa == pytest.approx(0.22)


def test_trainee_gpas_at_month_only_counts_that_month(fake_store):
    [first, _] = ReportService(fake_store).get_trainee_gpas(1, at=(2024, 1))
    assert first.penalty == 0
    assert first.gpa == pytest.approx(0.882)
    assert first.level == "A"


def test_concurrent_gather_matches_serial():
    serial = ReportService(FakeReportStore()).get_class_report_data(1)
    concurrent = ReportService(FakeReportStore(), max_workers=3).get_class_report_data(1)
    assert concurrent == serial


def test_summaries(fake_store):
    service = ReportService(fake_store)
    assert service.get_checkpoint_report(1) == CheckpointReport(b=1, d=1)
    assert service.get_class_status_report(1) == ClassStatusReport(learning=1, passed=1, drop_out=1)


def test_class_without_trainees(fake_store):
    service = ReportService(fake_store)
    assert service.get_checkpoint_report(2) is None
    assert service.get_class_status_report(2) == ClassStatusReport()
    assert service.get_trainee_gpas(2) == []


def test_unknown_class_is_empty(fake_store):
    service = ReportService(fake_store)
    assert service.get_feedback_report(404) == []
    assert service.get_topic_grades(404).is_empty


def test_store_failure_propagates():
    service = ReportService(FakeReportStore(fail_on="list_marks"), max_workers=3)
    with pytest.raises(ReportStoreError):
        service.get_trainee_gpas(1)


def test_expired_deadline(fake_store):
    with pytest.raises(ReportTimeoutError):
        ReportService(fake_store, deadline_seconds=0).get_trainee_gpas(1)


def test_generous_deadline(fake_store):
    gpas = ReportService(fake_store, max_workers=3, deadline_seconds=30).get_trainee_gpas(1)
    assert len(gpas) == 2


class SlowMarksStore(FakeReportStore):
    def list_marks(self, class_id, module_id=None, trainee_id=None):
        time.sleep(1.5)
        return super().list_marks(class_id, module_id=module_id, trainee_id=trainee_id)


def test_deadline_does_not_wait_for_slow_reads():
    service = ReportService(SlowMarksStore(), max_workers=3, deadline_seconds=0.2)
    started = time.monotonic()
    with pytest.raises(ReportTimeoutError):
        service.get_trainee_gpas(1)
    assert time.monotonic() - started < 1.0


def test_first_failure_does_not_wait_for_slow_reads():
    service = ReportService(SlowMarksStore(fail_on="list_bonus_penalty"), max_workers=3)
    started = time.monotonic()
    with pytest.raises(ReportStoreError):
        service.get_trainee_gpas(1)
    assert time.monotonic() - started < 1.0


def test_reports_are_idempotent(fake_store):
    service = ReportService(fake_store)
    assert service.get_trainee_gpas(1) == service.get_trainee_gpas(1)
    assert service.get_feedback_report(1) == service.get_feedback_report(1)
    assert service.get_total_attendance_reports(1) == service.get_total_attendance_reports(1)
    assert service.get_topic_grades(1) == service.get_topic_grades(1)
