"""Flask blueprint exposing the gradebook dashboard API."""

from __future__ import annotations

from flask import Blueprint, jsonify, request

from ..audit import AuditEntry
from ..bootstrap import BootstrapContext
from . import schemas


def _json_body() -> dict:
    payload = request.get_json(force=True, silent=True)
    return payload if isinstance(payload, dict) else {}


def _entries(items: list[AuditEntry]) -> dict:
    return {"entries": [entry.to_dict() for entry in items], "count": len(items)}


def create_blueprint(ctx: BootstrapContext) -> Blueprint:
    bp = Blueprint("gradebook_api", __name__)

    def respond(result, created: bool = False):
        envelope, status = schemas.from_result(result, created=created)
        return jsonify(envelope.to_dict()), status

    def bad_request(message: str):
        return jsonify(schemas.failure(message).to_dict()), 400

    @bp.route("/health", methods=["GET"])
    def health():
        return jsonify(schemas.success({"status": "ok", "audit_running": ctx.audit.running}).to_dict())

    @bp.route("/students", methods=["GET"])
    def list_students():
        query = request.args.get("q", "").strip()
        result = ctx.students.search_by_name(query) if query else ctx.students.list_students()
        return respond(result)

    @bp.route("/students", methods=["POST"])
    def add_student():
        payload = _json_body()
        return respond(ctx.students.add_student(payload), created=True)

    @bp.route("/students/<code>", methods=["GET"])
    def find_student(code: str):
        return respond(ctx.students.find_student(code))

    @bp.route("/students/<code>/grades", methods=["GET"])
    def student_grades(code: str):
        return respond(ctx.grades.grades_for_student(code))

    @bp.route("/students/<code>/grades", methods=["POST"])
    def record_grade(code: str):
        payload = _json_body()
        payload["student_code"] = code
        return respond(ctx.grades.record_grade(payload), created=True)

    @bp.route("/statistics", methods=["GET"])
    def class_statistics():
        stats = ctx.statistics.class_statistics()
        return jsonify(schemas.success(stats.to_dict()).to_dict())

    @bp.route("/cache/stats", methods=["GET"])
    def cache_stats():
        return jsonify(
            schemas.success(
                {
                    "entities": ctx.cache.stats().to_dict(),
                    "statistics": ctx.stats_cache.stats().to_dict(),
                }
            ).to_dict()
        )

    @bp.route("/cache/contents", methods=["GET"])
    def cache_contents():
        items = [
            {"key": str(key), "last_access": schemas.iso(touched)}
            for key, touched in ctx.cache.contents()
        ]
        return jsonify(schemas.success({"entries": items, "count": len(items)}).to_dict())

    @bp.route("/cache/clear", methods=["POST"])
    def cache_clear():
        ctx.cache.clear()
        ctx.stats_cache.clear()
        return jsonify(schemas.success({"cleared": True}).to_dict())

    @bp.route("/audit/recent", methods=["GET"])
    def audit_recent():
        try:
            limit = int(request.args.get("limit", 20))
        except ValueError:
            return bad_request("limit must be an integer")
        return jsonify(schemas.success(_entries(ctx.audit.recent_entries(limit))).to_dict())

    @bp.route("/audit/operation/<operation>", methods=["GET"])
    def audit_by_operation(operation: str):
        try:
            items = ctx.audit.filter_by_operation(operation)
        except ValueError as exc:
            return bad_request(str(exc))
        return jsonify(schemas.success(_entries(items)).to_dict())

    @bp.route("/audit/thread/<thread>", methods=["GET"])
    def audit_by_thread(thread: str):
        return jsonify(schemas.success(_entries(ctx.audit.filter_by_thread(thread))).to_dict())

    @bp.route("/audit/range", methods=["GET"])
    def audit_by_range():
        start, end = request.args.get("start"), request.args.get("end")
        if not start or not end:
            return bad_request("start and end are required (YYYY-MM-DD)")
        try:
            items = ctx.audit.filter_by_date_range(start, end)
        except ValueError:
            return bad_request("Invalid date format. Please use YYYY-MM-DD.")
        return jsonify(schemas.success(_entries(items)).to_dict())

    @bp.route("/audit/statistics", methods=["GET"])
    def audit_statistics():
        return jsonify(schemas.success(ctx.audit.statistics().to_dict()).to_dict())

    @bp.route("/audit/metrics", methods=["GET"])
    def audit_metrics():
        return jsonify(schemas.success(ctx.audit.metrics()).to_dict())

    return bp
