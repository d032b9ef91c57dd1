"""Value records consumed and produced by the reporting engine.

Source records mirror rows of the store; derived records are the finished
output of one aggregation stage. All of them are frozen so a stage can never
alter what an earlier stage produced.
"""
from dataclasses import dataclass, field, fields, is_dataclass
from datetime import date, datetime
from typing import Dict, List, Optional, Tuple


# -----------------------------
# Source records (read-only)
# -----------------------------
@dataclass(frozen=True)
class AttendanceRecord:
    trainee_id: int
    date: date
    status: Optional[str]


@dataclass(frozen=True)
class MarkRecord:
    trainee_id: int
    module_id: int
    score: float


@dataclass(frozen=True)
class ClassModuleRecord:
    module_id: int
    weight_number: float


@dataclass(frozen=True)
class ModuleRecord:
    module_id: int
    name: str
    max_score: float
    passing_score: float


@dataclass(frozen=True)
class FeedbackRecord:
    trainee_id: int
    created_at: datetime
    topic_content: float = 0
    topic_objective: float = 0
    approriate_topic_level: float = 0
    topic_usefulness: float = 0
    training_material: float = 0
    trainer_knowledge: float = 0
    subject_coverage: float = 0
    instruction_and_communicate: float = 0
    trainer_support: float = 0
    logistics: float = 0
    information_to_trainees: float = 0
    admin_support: float = 0


@dataclass(frozen=True)
class BonusOrPenaltyEntry:
    trainee_id: int
    created_at: datetime
    point: float
    reason: Optional[str] = None


@dataclass(frozen=True)
class ClassWindow:
    class_id: int
    start_day: date
    end_day: date


@dataclass(frozen=True)
class TraineeInfo:
    trainee_id: int
    fullname: Optional[str] = None
    username: Optional[str] = None
    dob: Optional[date] = None
    gender: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    facebook: Optional[str] = None
    status: Optional[str] = None
    on_board: Optional[bool] = None
    is_deactivated: bool = False
    class_name: Optional[str] = None
    start_day: Optional[date] = None
    end_day: Optional[date] = None


@dataclass(frozen=True)
class DateRange:
    """Inclusive [start, end] window of datetimes."""

    start: datetime
    end: datetime

    def __contains__(self, value) -> bool:
        if not isinstance(value, datetime):
            value = datetime(value.year, value.month, value.day)
        return self.start <= value <= self.end


# -----------------------------
# Derived records
# -----------------------------
@dataclass(frozen=True)
class AttendanceReport:
    trainee_id: int
    number_of_absent: int = 0
    number_of_late_in_and_early_out: int = 0
    no_permission_rate: float = 0.0
    disciplinary_point: float = 1.0


@dataclass(frozen=True)
class FeedbackReport:
    topic_content: float = 0.0
    topic_objective: float = 0.0
    approriate_topic_level: float = 0.0
    topic_usefulness: float = 0.0
    training_material: float = 0.0
    trainer_knowledge: float = 0.0
    subject_coverage: float = 0.0
    instruction_and_communicate: float = 0.0
    trainer_support: float = 0.0
    logistics: float = 0.0
    information_to_trainees: float = 0.0
    admin_support: float = 0.0
    training_programs: float = 0.0
    trainer: float = 0.0
    organization: float = 0.0
    content_eval: float = 0.0
    trainer_eval: float = 0.0
    organize_eval: float = 0.0
    ojt_eval: float = 0.0
    average_score: float = 0.0
    report_at: Optional[date] = None
    is_summary: bool = False


@dataclass(frozen=True)
class TopicInfo:
    topic_id: int
    name: str
    max_score: float
    passing_score: float
    weight_number: float


@dataclass(frozen=True)
class TraineeGrade:
    topic_id: int
    trainee_id: int
    score: float


@dataclass(frozen=True)
class MonthlyGrades:
    month: date
    grades: Tuple[TraineeGrade, ...] = ()


@dataclass(frozen=True)
class AverageScoreInfo:
    topic_id: int
    month: date
    max_score: float
    passing_score: float
    weight_number: float


@dataclass(frozen=True)
class FinalMarksInfo:
    max_score: float = 0.0
    passing_score: float = 0.0
    weight_number: float = 0.0


@dataclass(frozen=True)
class TopicGrades:
    topic_infos: Tuple[TopicInfo, ...] = ()
    trainee_topic_grades: Tuple[MonthlyGrades, ...] = ()
    average_score_infos: Tuple[AverageScoreInfo, ...] = ()
    trainee_average_grades: Tuple[MonthlyGrades, ...] = ()
    final_marks_info: FinalMarksInfo = field(default_factory=FinalMarksInfo)
    final_marks: Tuple[TraineeGrade, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.topic_infos


@dataclass(frozen=True)
class TraineeGPA:
    trainee_id: int
    academic_mark: float = 0.0
    disciplinary_point: float = 0.0
    bonus: float = 0.0
    penalty: float = 0.0
    gpa: float = 0.0
    level: str = "D"


@dataclass(frozen=True)
class ClassStatusReport:
    learning: int = 0
    passed: int = 0
    failed: int = 0
    deferred: int = 0
    drop_out: int = 0
    cancel: int = 0


@dataclass(frozen=True)
class CheckpointReport:
    a_plus: int = 0
    a: int = 0
    b: int = 0
    c: int = 0
    d: int = 0


def to_jsonable(value):
    """Convert report records (and containers of them) into JSON-ready data."""
    if is_dataclass(value) and not isinstance(value, type):
        return {f.name: to_jsonable(getattr(value, f.name)) for f in fields(value)}
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, dict):
        return {_jsonable_key(k): to_jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_jsonable(v) for v in value]
    return value


def _jsonable_key(key):
    if isinstance(key, (datetime, date)):
        return key.isoformat()
    return key


MonthlyAttendance = Dict[date, List[AttendanceReport]]
