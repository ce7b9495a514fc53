from __future__ import annotations

from flask import Flask, jsonify, request

from ..common.http import arg, date_arg, json_errors, today
from ..common.validators import require_positive_int
from ..container import Container
from ..core.exceptions import ValidationError


def register(app: Flask, container: Container) -> None:
    @app.route("/api/sync/compare", methods=["GET"], endpoint="sync_compare")
    @json_errors
    def compare():
        end = date_arg("end_date", default=today())
        start = date_arg("start_date", default=end)
        result = container.engine.compare(start, end)
        return jsonify({"success": True, "data": result.to_dict()})

    @app.route("/api/sync/apply", methods=["POST"], endpoint="sync_apply")
    @json_errors
    def apply():
        payload = request.get_json(silent=True) or {}
        actions = payload.get("actions")
        if not isinstance(actions, list):
            raise ValidationError("actions must be a list")
        result = container.engine.apply_actions(actions)
        return jsonify({"success": not result.errors, "data": result.to_dict()})

    @app.route("/api/sync/run", methods=["POST"], endpoint="sync_run")
    @json_errors
    def run():
        report = container.scheduler.poll_once()
        if report is None:
            return jsonify({"success": False, "error": "A reconciliation pass is already running"}), 409
        status = 200 if report.succeeded else 502
        return jsonify({"success": report.succeeded, "data": report.to_dict(), "error": report.error}), status

    @app.route("/api/sync/status", methods=["GET"], endpoint="sync_status")
    @json_errors
    def status():
        return jsonify({"success": True, "data": container.scheduler.status()})

    @app.route("/api/sync/history", methods=["GET"], endpoint="sync_history")
    @json_errors
    def history():
        limit = require_positive_int(arg("limit", 20), "limit")
        return jsonify({"success": True, "data": [e.to_dict() for e in container.engine.history(limit)]})

    @app.route("/api/sync/start", methods=["POST"], endpoint="sync_start")
    @json_errors
    def start():
        container.scheduler.start()
        return jsonify({"success": True, "data": container.scheduler.status()})

    @app.route("/api/sync/stop", methods=["POST"], endpoint="sync_stop")
    @json_errors
    def stop():
        container.scheduler.stop()
        return jsonify({"success": True, "data": container.scheduler.status()})
