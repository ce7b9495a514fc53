from __future__ import annotations

from flask import Flask, jsonify

from ..common.http import arg, date_arg, json_errors, optional_int_arg, optional_timestamp_arg, today
from ..common.validators import require_positive_int
from ..container import Container
from ..core.exceptions import ValidationError
from ..validation.model import ValidationOptions


def _flag(name: str, default: bool) -> bool:
    value = arg(name)
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in {"1", "true", "yes", "on"}


def register(app: Flask, container: Container) -> None:
    @app.route("/api/attendance/scan", methods=["POST"], endpoint="attendance_scan")
    @json_errors
    def scan():
        employee_id = arg("employee_uid", arg("employee_id"))
        if employee_id in (None, ""):
            raise ValidationError("employee_uid is required")
        result = container.clock_service.record_scan(
            require_positive_int(employee_id, "employee_uid"),
            now=optional_timestamp_arg("clock_time"),
        )
        event = result.event
        return jsonify(
            {
                "success": True,
                "data": {
                    **event.to_remote(),
                    "paired_clock_in": result.paired_with.to_remote() if result.paired_with else None,
                },
            }
        ), 201

    @app.route("/api/attendance/validate", methods=["POST"], endpoint="attendance_validate")
    @json_errors
    def validate():
        end = date_arg("end_date", default=today())
        start = date_arg("start_date", default=end)
        options = ValidationOptions(
            auto_correct=_flag("auto_correct", True),
            rebuild_summary=_flag("rebuild_summary", True),
            force_rebuild=_flag("force_rebuild", False),
        )
        report = container.validator.validate(start, end, optional_int_arg("employee_uid"), options)
        for key in sorted(report.corrected_keys):
            container.scheduler.queue_reupload(key)
        return jsonify({"success": True, "data": report.to_dict()})
