from __future__ import annotations

from flask import Flask, jsonify

from ..common.http import date_arg, json_errors, optional_int_arg, today
from ..container import Container


def register(app: Flask, container: Container) -> None:
    @app.route("/api/daily-summary", methods=["GET"], endpoint="daily_summary")
    @json_errors
    def daily_summary():
        end = date_arg("end_date", default=today())
        start = date_arg("start_date", default=end)
        rows = container.summary_builder.list_range(start, end, employee_id=optional_int_arg("employee_uid"))
        return jsonify({"success": True, "data": [s.to_remote() for s in rows]})

    @app.route("/api/daily-summary/rebuild", methods=["POST"], endpoint="daily_summary_rebuild")
    @json_errors
    def rebuild_summaries():
        end = date_arg("end_date", default=today())
        start = date_arg("start_date", default=end)
        count = container.summary_builder.rebuild_range(start, end, employee_id=optional_int_arg("employee_uid"))
        return jsonify({"success": True, "data": {"rebuilt": count}})
