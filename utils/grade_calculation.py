import logging
import math
from collections import defaultdict
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

from utils.calendar_utils import Month, first_day
from utils.report_types import (
    AverageScoreInfo,
    ClassModuleRecord,
    FinalMarksInfo,
    MarkRecord,
    ModuleRecord,
    MonthlyGrades,
    TopicGrades,
    TopicInfo,
    TraineeGrade,
)

logger = logging.getLogger(__name__)


def build_topic_infos(
    class_modules: Sequence[ClassModuleRecord],
    modules: Mapping[int, Optional[ModuleRecord]],
) -> List[TopicInfo]:
    """Join class modules with module metadata; unknown modules are skipped."""
    infos = []
    for cm in class_modules:
        module = modules.get(cm.module_id)
        if module is None:
            logger.warning(
                f"Class module {cm.module_id} has no module record; excluded from grades"
            )
            continue
        infos.append(
            TopicInfo(
                topic_id=cm.module_id,
                name=module.name,
                max_score=float(module.max_score or 0),
                passing_score=float(module.passing_score or 0),
                weight_number=float(cm.weight_number or 0),
            )
        )
    return infos


def _group_grades(
    topic_infos: Sequence[TopicInfo],
    topic_months: Mapping[int, Month],
    marks: Sequence[MarkRecord],
    weighted: bool,
) -> List[MonthlyGrades]:
    weights = {t.topic_id: t.weight_number for t in topic_infos}
    by_month: Dict[Month, List[TraineeGrade]] = {}
    for topic in topic_infos:
        bucket = by_month.setdefault(topic_months[topic.topic_id], [])
        for mark in marks:
            if mark.module_id != topic.topic_id:
                continue
            score = float(mark.score or 0)
            if weighted:
                score *= weights[topic.topic_id]
            bucket.append(
                TraineeGrade(topic_id=topic.topic_id, trainee_id=mark.trainee_id, score=score)
            )
    return [
        MonthlyGrades(month=first_day(month), grades=tuple(grades))
        for month, grades in by_month.items()
    ]


def compute_final_marks(
    topic_infos: Sequence[TopicInfo], marks: Iterable[MarkRecord]
) -> List[TraineeGrade]:
    """Sum of score x weight per trainee over the class's modules.

    Marks on modules outside the class are ignored. Rows are ordered by
    trainee id; fsum keeps the total independent of mark order.
    """
    weights = {t.topic_id: t.weight_number for t in topic_infos}
    parts = defaultdict(list)
    for mark in marks:
        weight = weights.get(mark.module_id)
        if weight is None:
            logger.debug(
                f"Mark of trainee {mark.trainee_id} on module {mark.module_id} "
                f"is outside the class; skipped"
            )
            continue
        parts[mark.trainee_id].append(float(mark.score or 0) * weight)
    return [
        TraineeGrade(topic_id=0, trainee_id=tid, score=math.fsum(parts[tid]))
        for tid in sorted(parts)
    ]


def compute_topic_grades(
    class_modules: Sequence[ClassModuleRecord],
    modules: Mapping[int, Optional[ModuleRecord]],
    marks: Sequence[MarkRecord],
    months: Sequence[Month],
) -> TopicGrades:
    """Weighted topic grades of a class.

    Module i of the class is laid out on month i of the class window,
    wrapping around when there are more modules than months. Without any
    month the per-month rows are left empty; final marks are still computed.
    """
    topic_infos = build_topic_infos(class_modules, modules)
    if not topic_infos:
        return TopicGrades()

    final_marks_info = FinalMarksInfo(
        max_score=math.fsum(t.max_score * t.weight_number for t in topic_infos),
        passing_score=math.fsum(t.passing_score * t.weight_number for t in topic_infos),
        weight_number=math.fsum(t.weight_number for t in topic_infos),
    )
    final_marks = tuple(compute_final_marks(topic_infos, marks))

    if not months:
        logger.warning(
            f"Class window covers no month; {len(topic_infos)} modules have no month placement"
        )
        return TopicGrades(
            topic_infos=tuple(topic_infos),
            final_marks_info=final_marks_info,
            final_marks=final_marks,
        )

    topic_months = {
        topic.topic_id: months[i % len(months)] for i, topic in enumerate(topic_infos)
    }
    average_score_infos = [
        AverageScoreInfo(
            topic_id=t.topic_id,
            month=first_day(topic_months[t.topic_id]),
            max_score=t.max_score * t.weight_number,
            passing_score=t.passing_score * t.weight_number,
            weight_number=t.weight_number,
        )
        for t in topic_infos
    ]

    return TopicGrades(
        topic_infos=tuple(topic_infos),
        trainee_topic_grades=tuple(_group_grades(topic_infos, topic_months, marks, False)),
        average_score_infos=tuple(average_score_infos),
        trainee_average_grades=tuple(_group_grades(topic_infos, topic_months, marks, True)),
        final_marks_info=final_marks_info,
        final_marks=final_marks,
    )
