"""Re-validate stored hours for a date range and print the report as JSON."""

from __future__ import annotations

import argparse
import importlib
import json
import logging
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
for path in (REPO_ROOT, REPO_ROOT / "src"):
    if str(path) not in sys.path:
        sys.path.insert(0, str(path))

from dotenv import load_dotenv

from config import get_settings_module

from attendance_sync.common.datetime_utils import now_local, parse_iso_date
from attendance_sync.container import build_container
from attendance_sync.validation.model import ValidationOptions


def parse_args(argv=None) -> argparse.Namespace:
    today = now_local().date().isoformat()
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--start-date", default=today, help="YYYY-MM-DD (default: today)")
    parser.add_argument("--end-date", default=None, help="YYYY-MM-DD (default: start date)")
    parser.add_argument("--employee", type=int, default=None, help="restrict to one employee uid")
    parser.add_argument("--no-autocorrect", action="store_true", help="report mismatches without writing")
    parser.add_argument("--no-rebuild", action="store_true", help="do not rebuild corrected daily summaries")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    load_dotenv(override=False)
    args = parse_args(argv)
    settings = importlib.import_module(get_settings_module())
    logging.basicConfig(level=getattr(settings, "LOG_LEVEL", "INFO"), format="%(levelname)s [%(name)s] %(message)s")

    start = parse_iso_date(args.start_date)
    end = parse_iso_date(args.end_date) if args.end_date else start
    container = build_container(db_config=dict(settings.DB_CONFIG), settings=settings)
    report = container.validator.validate(
        start,
        end,
        args.employee,
        ValidationOptions(auto_correct=not args.no_autocorrect, rebuild_summary=not args.no_rebuild),
    )
    print(json.dumps(report.to_dict(), indent=2))
    return 1 if report.error_records else 0


if __name__ == "__main__":
    sys.exit(main())
