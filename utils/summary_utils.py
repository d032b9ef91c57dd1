import logging
import re
from enum import Enum
from typing import Iterable, Optional

from utils.report_types import CheckpointReport, ClassStatusReport, TraineeGPA

logger = logging.getLogger(__name__)

_SEPARATORS = re.compile(r"[\s_\-]+")


class TraineeStatus(str, Enum):
    LEARNING = "learning"
    PASSED = "passed"
    FAILED = "failed"
    DEFERRED = "deferred"
    DROP_OUT = "dropout"
    CANCEL = "cancel"

    @classmethod
    def parse(cls, value: str) -> "TraineeStatus":
        """Strict parse of a status entered by a user, e.g. "Drop out"."""
        if value is None:
            raise ValueError("Trainee status is required")
        key = _SEPARATORS.sub("", str(value)).lower()
        for status in cls:
            if status.value == key:
                return status
        raise ValueError(f"Unknown trainee status: {value!r}")

    @classmethod
    def coerce(cls, value: Optional[str]) -> "TraineeStatus":
        """Best-effort reading of a stored status; unknown text counts as learning."""
        if value is None:
            return cls.LEARNING
        try:
            return cls.parse(value)
        except ValueError:
            pass
        text = str(value).lower()
        for status in cls:
            if status.value in text:
                return status
        logger.warning(f"Unrecognised trainee status {value!r}, counted as learning")
        return cls.LEARNING


_STATUS_FIELDS = {
    TraineeStatus.LEARNING: "learning",
    TraineeStatus.PASSED: "passed",
    TraineeStatus.FAILED: "failed",
    TraineeStatus.DEFERRED: "deferred",
    TraineeStatus.DROP_OUT: "drop_out",
    TraineeStatus.CANCEL: "cancel",
}

_LEVEL_FIELDS = {"A+": "a_plus", "A": "a", "B": "b", "C": "c", "D": "d"}


def summarize_class_status(statuses: Iterable[Optional[str]]) -> ClassStatusReport:
    counts = {name: 0 for name in _STATUS_FIELDS.values()}
    for raw in statuses:
        counts[_STATUS_FIELDS[TraineeStatus.coerce(raw)]] += 1
    return ClassStatusReport(**counts)


def summarize_checkpoints(gpas: Iterable[TraineeGPA]) -> Optional[CheckpointReport]:
    """Trainees per GPA level; None when there is nobody to count."""
    gpas = list(gpas)
    if not gpas:
        return None
    counts = {name: 0 for name in _LEVEL_FIELDS.values()}
    for row in gpas:
        field_name = _LEVEL_FIELDS.get(row.level)
        if field_name is not None:
            counts[field_name] += 1
    return CheckpointReport(**counts)
