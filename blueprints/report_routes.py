import logging
from flask import Blueprint, current_app, jsonify, request
from utils.calendar_utils import month_range, parse_month
from utils.errors import InvalidReportParameter, ReportTimeoutError
from utils.report_service import ReportService
from utils.report_store import SQLAlchemyReportStore
from utils.report_types import to_jsonable

logger = logging.getLogger(__name__)

reports_bp = Blueprint("reports", __name__)


def _get_report_service() -> ReportService:
    """Build a service for the current request from the app config."""
    app = current_app._get_current_object()
    return ReportService(
        SQLAlchemyReportStore(),
        max_workers=app.config.get("REPORT_MAX_WORKERS", 1),
        deadline_seconds=app.config.get("REPORT_DEADLINE_SECONDS"),
        worker_context=app.app_context,
    )


def _report_response(compute, not_found=None):
    """Run a report computation and map engine failures to HTTP errors.

    With ``not_found`` a ``None`` result answers 404 with that message.
    """
    try:
        result = compute()
        if result is None and not_found:
            return jsonify({"error": not_found}), 404
        return jsonify(to_jsonable(result))
    except InvalidReportParameter as e:
        return jsonify({"error": str(e)}), 400
    except ReportTimeoutError as e:
        logger.error(f"Report timed out: {str(e)}")
        return jsonify({"error": str(e)}), 504
    except Exception as e:
        logger.error(f"Report failed: {str(e)}")
        return jsonify({"error": str(e)}), 500


@reports_bp.route("/api/reports/<int:class_id>", methods=["GET"])
def class_report_data(class_id):
    return _report_response(
        lambda: _get_report_service().get_class_report_data(
            class_id, at=parse_month(request.args.get("at"))
        )
    )


@reports_bp.route("/api/reports/<int:class_id>/status", methods=["GET"])
def class_status_report(class_id):
    return _report_response(lambda: _get_report_service().get_class_status_report(class_id))


@reports_bp.route("/api/reports/<int:class_id>/checkpoint", methods=["GET"])
def checkpoint_report(class_id):
    return _report_response(
        lambda: _get_report_service().get_checkpoint_report(class_id),
        not_found="No trainees with GPA data in this class",
    )


@reports_bp.route("/api/reports/<int:class_id>/feedback", methods=["GET"])
def feedback_report(class_id):
    return _report_response(
        lambda: _get_report_service().get_feedback_report(
            class_id, month=parse_month(request.args.get("month"))
        )
    )


@reports_bp.route("/api/reports/<int:class_id>/feedbacks", methods=["GET"])
def trainee_feedbacks(class_id):
    return _report_response(
        lambda: _get_report_service().get_trainee_feedbacks(
            class_id, month=parse_month(request.args.get("month"))
        )
    )


@reports_bp.route("/api/reports/<int:class_id>/attendance", methods=["GET"])
def attendance_report(class_id):
    def compute():
        month = parse_month(request.args.get("month"))
        service = _get_report_service()
        if month is None:
            return service.get_total_attendance_reports(class_id)
        return service.get_attendance_report_each_month(class_id, month)

    return _report_response(compute)


@reports_bp.route("/api/reports/<int:class_id>/attendance-info", methods=["GET"])
def attendance_info(class_id):
    def compute():
        info = _get_report_service().get_attendance_info(
            class_id, month=parse_month(request.args.get("month"))
        )
        return {
            day: [{"trainee_id": tid, "status": status} for tid, status in rows]
            for day, rows in info.items()
        }

    return _report_response(compute)


@reports_bp.route("/api/reports/<int:class_id>/gpa", methods=["GET"])
def trainee_gpas(class_id):
    return _report_response(
        lambda: _get_report_service().get_trainee_gpas(
            class_id, at=parse_month(request.args.get("at"))
        )
    )


@reports_bp.route("/api/reports/<int:class_id>/topic-grades", methods=["GET"])
def topic_grades(class_id):
    return _report_response(lambda: _get_report_service().get_topic_grades(class_id))


@reports_bp.route("/api/reports/<int:class_id>/reward-penalty", methods=["GET"])
def reward_and_penalty(class_id):
    def compute():
        at = parse_month(request.args.get("at"))
        window = month_range(*at) if at is not None else None
        return _get_report_service().get_reward_and_penalty(class_id, window)

    return _report_response(compute)


@reports_bp.route("/api/reports/<int:class_id>/trainees", methods=["GET"])
def trainees_info(class_id):
    return _report_response(lambda: _get_report_service().get_trainees_info(class_id))
