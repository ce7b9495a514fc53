from __future__ import annotations

import logging
from datetime import date
from functools import wraps
from typing import Optional

from flask import jsonify, request

from ..core.exceptions import DomainError, SyncError, TransactionFailure, ValidationError
from .datetime_utils import now_local, parse_iso_date, parse_timestamp
from .validators import require_positive_int

logger = logging.getLogger(__name__)


def json_errors(view):
    """Translate domain/sync failures into ``{success: false, error}`` JSON responses."""

    @wraps(view)
    def wrapper(*args, **kwargs):
        try:
            return view(*args, **kwargs)
        except DomainError as e:
            return jsonify({"success": False, "error": str(e)}), 400
        except TransactionFailure as e:
            logger.error("Storage transaction failed in %s: %s", view.__name__, e)
            return jsonify({"success": False, "error": str(e)}), 500
        except SyncError as e:
            logger.warning("Remote call failed in %s: %s", view.__name__, e)
            return jsonify({"success": False, "error": str(e)}), 502

    return wrapper


def _payload() -> dict:
    return request.get_json(silent=True) or {}


def arg(name: str, default=None):
    """Read a value from the query string, falling back to the JSON body."""

    value = request.args.get(name)
    if value is None:
        value = _payload().get(name, default)
    return value


def date_arg(name: str, *, default: Optional[date] = None) -> date:
    value = arg(name)
    if value in (None, ""):
        if default is None:
            raise ValidationError(f"{name} is required")
        return default
    return parse_iso_date(str(value))


def optional_int_arg(name: str) -> Optional[int]:
    value = arg(name)
    if value in (None, ""):
        return None
    return require_positive_int(value, name)


def optional_timestamp_arg(name: str):
    value = arg(name)
    if value in (None, ""):
        return None
    return parse_timestamp(value)


def today() -> date:
    return now_local().date()
