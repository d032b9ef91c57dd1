import os
import sys
from datetime import date, datetime, timedelta

import pytest

# Ensure project root is on sys.path so tests can import app.py and utils
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from utils.errors import ReportStoreError
from utils.report_store import ReportStore
from utils.report_types import (
    AttendanceRecord,
    BonusOrPenaltyEntry,
    ClassModuleRecord,
    ClassWindow,
    FeedbackRecord,
    MarkRecord,
    ModuleRecord,
    TraineeInfo,
)

# Class 1 runs from 2024-01-10 to 2024-02-20 with trainees 1 and 2 active
# and trainee 3 deactivated. Class 2 exists but has no trainees.
CLASS_WINDOWS = {
    1: ClassWindow(class_id=1, start_day=date(2024, 1, 10), end_day=date(2024, 2, 20)),
    2: ClassWindow(class_id=2, start_day=date(2024, 3, 1), end_day=date(2024, 4, 30)),
}

TRAINEES = {
    1: [
        TraineeInfo(trainee_id=1, username="an.nguyen", fullname="An Nguyen", status="Passed"),
        TraineeInfo(trainee_id=2, username="binh.tran", fullname="Binh Tran", status="learning"),
        TraineeInfo(
            trainee_id=3,
            username="chi.le",
            fullname="Chi Le",
            status="Drop out",
            is_deactivated=True,
        ),
    ],
    2: [],
}

MODULES = {
    10: ModuleRecord(module_id=10, name="Java Core", max_score=10, passing_score=5),
    11: ModuleRecord(module_id=11, name="Spring", max_score=20, passing_score=10),
    99: ModuleRecord(module_id=99, name="Other class module", max_score=100, passing_score=50),
}

CLASS_MODULES = {
    1: [
        ClassModuleRecord(module_id=10, weight_number=1),
        ClassModuleRecord(module_id=11, weight_number=2),
    ],
}

MARKS = [
    MarkRecord(trainee_id=1, module_id=10, score=8),
    MarkRecord(trainee_id=1, module_id=11, score=15),
    MarkRecord(trainee_id=1, module_id=99, score=100),
    MarkRecord(trainee_id=2, module_id=10, score=5),
]

FEEDBACKS = [
    FeedbackRecord(trainee_id=1, created_at=datetime(2024, 1, 15, 10, 0), **{
        name: 4 for name in (
            "topic_content", "topic_objective", "approriate_topic_level",
            "topic_usefulness", "training_material", "trainer_knowledge",
            "subject_coverage", "instruction_and_communicate", "trainer_support",
            "logistics", "information_to_trainees", "admin_support",
        )
    }),
    FeedbackRecord(trainee_id=2, created_at=datetime(2024, 1, 20, 9, 0), **{
        name: 2 for name in (
            "topic_content", "topic_objective", "approriate_topic_level",
            "topic_usefulness", "training_material", "trainer_knowledge",
            "subject_coverage", "instruction_and_communicate", "trainer_support",
            "logistics", "information_to_trainees", "admin_support",
        )
    }),
]

BONUS_PENALTY = [
    BonusOrPenaltyEntry(trainee_id=1, created_at=datetime(2024, 1, 15, 8, 0), point=5, reason="Best demo"),
    BonusOrPenaltyEntry(trainee_id=1, created_at=datetime(2024, 2, 10, 8, 0), point=-2, reason="Late report"),
]


def _attendance():
    records = []
    # Trainee 1: 20 January days (one A, one Ln), 10 present February days
    for i in range(20):
        day = date(2024, 1, 2) + timedelta(days=i)
        status = {0: "A", 1: "Ln"}.get(i, "P")
        records.append(AttendanceRecord(trainee_id=1, date=day, status=status))
    for i in range(10):
        records.append(AttendanceRecord(trainee_id=1, date=date(2024, 2, 1) + timedelta(days=i), status="P"))
    # Trainee 2: 10 January days, five of them absent without permission
    for i in range(10):
        day = date(2024, 1, 2) + timedelta(days=i)
        records.append(AttendanceRecord(trainee_id=2, date=day, status="An" if i < 5 else "P"))
    return records


ATTENDANCE = _attendance()


class FakeReportStore(ReportStore):
    """In-memory store over the records above."""

    def __init__(self, fail_on=None):
        self.fail_on = fail_on
        self.calls = []
        self.trainee_class = {
            t.trainee_id: class_id for class_id, trainees in TRAINEES.items() for t in trainees
        }

    def _record(self, name):
        self.calls.append(name)
        if name == self.fail_on:
            raise ReportStoreError(f"{name} failed: connection lost")

    def _in_class(self, trainee_id, class_id):
        return self.trainee_class.get(trainee_id) == class_id

    def list_attendance(self, class_id, trainee_id=None, date_range=None):
        self._record("list_attendance")
        return [
            r
            for r in ATTENDANCE
            if self._in_class(r.trainee_id, class_id)
            and (trainee_id is None or r.trainee_id == trainee_id)
            and (date_range is None or r.date in date_range)
        ]

    def list_marks(self, class_id, module_id=None, trainee_id=None):
        self._record("list_marks")
        return [
            m
            for m in MARKS
            if self._in_class(m.trainee_id, class_id)
            and (module_id is None or m.module_id == module_id)
            and (trainee_id is None or m.trainee_id == trainee_id)
        ]

    def list_class_modules(self, class_id):
        self._record("list_class_modules")
        return list(CLASS_MODULES.get(class_id, []))

    def get_module(self, module_id):
        self._record("get_module")
        return MODULES.get(module_id)

    def list_feedback(self, class_id, date_range=None):
        self._record("list_feedback")
        return [
            f
            for f in FEEDBACKS
            if self._in_class(f.trainee_id, class_id)
            and (date_range is None or f.created_at in date_range)
        ]

    def list_bonus_penalty(self, trainee_id, date_range=None):
        self._record("list_bonus_penalty")
        return [
            b
            for b in BONUS_PENALTY
            if b.trainee_id == trainee_id and (date_range is None or b.created_at in date_range)
        ]

    def get_class_window(self, class_id):
        self._record("get_class_window")
        return CLASS_WINDOWS.get(class_id)

    def list_active_trainees(self, class_id):
        self._record("list_active_trainees")
        return [t.trainee_id for t in TRAINEES.get(class_id, []) if not t.is_deactivated]

    def list_trainees(self, class_id):
        self._record("list_trainees")
        window = CLASS_WINDOWS.get(class_id)
        return [
            TraineeInfo(
                **{**t.__dict__, "start_day": window.start_day, "end_day": window.end_day}
            )
            for t in TRAINEES.get(class_id, [])
        ]


@pytest.fixture
def fake_store():
    return FakeReportStore()


@pytest.fixture
def app():
    from app import create_app
    from models import db

    app = create_app({"TESTING": True, "SQLALCHEMY_DATABASE_URI": "sqlite://"})
    with app.app_context():
        db.create_all()
        seed_database(db)
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


def seed_database(db):
    from models import (
        Attendance,
        BonusAndPunish,
        Class,
        ClassModule,
        Feedback,
        Mark,
        Module,
        Trainee,
    )

    for window in CLASS_WINDOWS.values():
        db.session.add(
            Class(
                class_id=window.class_id,
                class_name=f"Class {window.class_id}",
                start_day=window.start_day,
                end_day=window.end_day,
            )
        )
    for class_id, trainees in TRAINEES.items():
        for t in trainees:
            db.session.add(
                Trainee(
                    trainee_id=t.trainee_id,
                    class_id=class_id,
                    username=t.username,
                    fullname=t.fullname,
                    status=t.status,
                    is_deactivated=t.is_deactivated,
                )
            )
    for m in MODULES.values():
        db.session.add(
            Module(
                module_id=m.module_id,
                module_name=m.name,
                max_score=m.max_score,
                passing_score=m.passing_score,
            )
        )
    db.session.flush()
    for class_id, class_modules in CLASS_MODULES.items():
        for cm in class_modules:
            db.session.add(
                ClassModule(class_id=class_id, module_id=cm.module_id, weight_number=cm.weight_number)
            )
    for m in MARKS:
        db.session.add(Mark(trainee_id=m.trainee_id, module_id=m.module_id, score=m.score))
    for r in ATTENDANCE:
        db.session.add(Attendance(trainee_id=r.trainee_id, date=r.date, status=r.status))
    for f in FEEDBACKS:
        db.session.add(Feedback(**f.__dict__))
    for b in BONUS_PENALTY:
        db.session.add(
            BonusAndPunish(
                trainee_id=b.trainee_id, created_at=b.created_at, score=b.point, reason=b.reason
            )
        )
    db.session.commit()
