"""Read-only access to the records the reporting engine consumes.

``ReportStore`` names the reads; ``SQLAlchemyReportStore`` answers them from
the application database. The engine never writes through a store.
"""
import logging
from functools import wraps
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError

from models import (
    Attendance,
    BonusAndPunish,
    Class,
    ClassModule,
    Feedback,
    Mark,
    Module,
    Trainee,
    db,
)
from utils.errors import ReportStoreError
from utils.report_types import (
    AttendanceRecord,
    BonusOrPenaltyEntry,
    ClassModuleRecord,
    ClassWindow,
    DateRange,
    FeedbackRecord,
    MarkRecord,
    ModuleRecord,
    TraineeInfo,
)

logger = logging.getLogger(__name__)


class ReportStore:
    """Reads the reporting engine depends on."""

    def list_attendance(
        self, class_id: int, trainee_id: Optional[int] = None, date_range: Optional[DateRange] = None
    ) -> List[AttendanceRecord]:
        raise NotImplementedError

    def list_marks(
        self, class_id: int, module_id: Optional[int] = None, trainee_id: Optional[int] = None
    ) -> List[MarkRecord]:
        raise NotImplementedError

    def list_class_modules(self, class_id: int) -> List[ClassModuleRecord]:
        raise NotImplementedError

    def get_module(self, module_id: int) -> Optional[ModuleRecord]:
        raise NotImplementedError

    def list_feedback(
        self, class_id: int, date_range: Optional[DateRange] = None
    ) -> List[FeedbackRecord]:
        raise NotImplementedError

    def list_bonus_penalty(
        self, trainee_id: int, date_range: Optional[DateRange] = None
    ) -> List[BonusOrPenaltyEntry]:
        raise NotImplementedError

    def get_class_window(self, class_id: int) -> Optional[ClassWindow]:
        raise NotImplementedError

    def list_active_trainees(self, class_id: int) -> List[int]:
        raise NotImplementedError

    def list_trainees(self, class_id: int) -> List[TraineeInfo]:
        raise NotImplementedError


def _store_read(func):
    """Wrap database failures into ReportStoreError."""

    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except SQLAlchemyError as e:
            logger.error(f"Store read {func.__name__} failed: {str(e)}")
            raise ReportStoreError(f"{func.__name__} failed: {e}") from e

    return wrapper


class SQLAlchemyReportStore(ReportStore):
    """Store backed by the Flask-SQLAlchemy models; needs an app context."""

    def __init__(self, session=None):
        self.session = session if session is not None else db.session

    def _scalars(self, stmt):
        return self.session.execute(stmt).scalars().all()

    def _class_trainee_ids(self, class_id: int):
        return db.select(Trainee.trainee_id).where(Trainee.class_id == class_id)

    @_store_read
    def list_attendance(self, class_id, trainee_id=None, date_range=None):
        stmt = db.select(Attendance).where(
            Attendance.trainee_id.in_(self._class_trainee_ids(class_id))
        )
        if trainee_id is not None:
            stmt = stmt.where(Attendance.trainee_id == trainee_id)
        if date_range is not None:
            stmt = stmt.where(
                Attendance.date >= date_range.start.date(),
                Attendance.date <= date_range.end.date(),
            )
        stmt = stmt.order_by(Attendance.date, Attendance.trainee_id)
        return [
            AttendanceRecord(trainee_id=a.trainee_id, date=a.date, status=a.status)
            for a in self._scalars(stmt)
        ]

    @_store_read
    def list_marks(self, class_id, module_id=None, trainee_id=None):
        stmt = db.select(Mark).where(Mark.trainee_id.in_(self._class_trainee_ids(class_id)))
        if module_id is not None:
            stmt = stmt.where(Mark.module_id == module_id)
        if trainee_id is not None:
            stmt = stmt.where(Mark.trainee_id == trainee_id)
        stmt = stmt.order_by(Mark.trainee_id, Mark.module_id)
        return [
            MarkRecord(trainee_id=m.trainee_id, module_id=m.module_id, score=m.score)
            for m in self._scalars(stmt)
        ]

    @_store_read
    def list_class_modules(self, class_id):
        stmt = (
            db.select(ClassModule)
            .where(ClassModule.class_id == class_id)
            .order_by(ClassModule.module_id)
        )
        return [
            ClassModuleRecord(module_id=cm.module_id, weight_number=cm.weight_number)
            for cm in self._scalars(stmt)
        ]

    @_store_read
    def get_module(self, module_id):
        module = self.session.get(Module, module_id)
        if module is None:
            return None
        return ModuleRecord(
            module_id=module.module_id,
            name=module.module_name,
            max_score=module.max_score,
            passing_score=module.passing_score,
        )

    @_store_read
    def list_feedback(self, class_id, date_range=None):
        stmt = db.select(Feedback).where(
            Feedback.trainee_id.in_(self._class_trainee_ids(class_id))
        )
        if date_range is not None:
            stmt = stmt.where(
                Feedback.created_at >= date_range.start,
                Feedback.created_at <= date_range.end,
            )
        stmt = stmt.order_by(Feedback.created_at, Feedback.id)
        return [
            FeedbackRecord(
                trainee_id=f.trainee_id,
                created_at=f.created_at,
                topic_content=f.topic_content,
                topic_objective=f.topic_objective,
                approriate_topic_level=f.approriate_topic_level,
                topic_usefulness=f.topic_usefulness,
                training_material=f.training_material,
                trainer_knowledge=f.trainer_knowledge,
                subject_coverage=f.subject_coverage,
                instruction_and_communicate=f.instruction_and_communicate,
                trainer_support=f.trainer_support,
                logistics=f.logistics,
                information_to_trainees=f.information_to_trainees,
                admin_support=f.admin_support,
            )
            for f in self._scalars(stmt)
        ]

    @_store_read
    def list_bonus_penalty(self, trainee_id, date_range=None):
        stmt = db.select(BonusAndPunish).where(BonusAndPunish.trainee_id == trainee_id)
        if date_range is not None:
            stmt = stmt.where(
                BonusAndPunish.created_at >= date_range.start,
                BonusAndPunish.created_at <= date_range.end,
            )
        stmt = stmt.order_by(BonusAndPunish.created_at, BonusAndPunish.id)
        return [
            BonusOrPenaltyEntry(
                trainee_id=b.trainee_id,
                created_at=b.created_at,
                point=b.score,
                reason=b.reason,
            )
            for b in self._scalars(stmt)
        ]

    @_store_read
    def get_class_window(self, class_id):
        class_obj = self.session.get(Class, class_id)
        if class_obj is None:
            return None
        return ClassWindow(
            class_id=class_obj.class_id,
            start_day=class_obj.start_day,
            end_day=class_obj.end_day,
        )

    @_store_read
    def list_active_trainees(self, class_id):
        stmt = (
            db.select(Trainee.trainee_id)
            .where(Trainee.class_id == class_id, Trainee.is_deactivated.is_(False))
            .order_by(Trainee.trainee_id)
        )
        return list(self._scalars(stmt))

    @_store_read
    def list_trainees(self, class_id):
        stmt = (
            db.select(Trainee, Class)
            .join(Class, Trainee.class_id == Class.class_id)
            .where(Trainee.class_id == class_id)
            .order_by(Trainee.trainee_id)
        )
        return [
            TraineeInfo(
                trainee_id=t.trainee_id,
                fullname=t.fullname,
                username=t.username,
                dob=t.dob,
                gender=t.gender,
                email=t.email,
                phone=t.phone,
                facebook=t.facebook,
                status=t.status,
                on_board=t.on_board,
                is_deactivated=bool(t.is_deactivated),
                class_name=c.class_name,
                start_day=c.start_day,
                end_day=c.end_day,
            )
            for t, c in self.session.execute(stmt).all()
        ]
