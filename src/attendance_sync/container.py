from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from .attendance.mysql_attendance_repository import MySQLAttendanceRepository
from .attendance.service import ClockService
from .core.constants import (
    DEFAULT_DEBOUNCE_SECONDS,
    DEFAULT_FETCH_LIMIT,
    DEFAULT_MAX_RETRY_ATTEMPTS,
    DEFAULT_REMOTE_TIMEOUT_SECONDS,
    DEFAULT_RETRY_BASE_DELAY_SECONDS,
    DEFAULT_RETRY_MAX_DELAY_SECONDS,
    DEFAULT_REUPLOAD_CAPACITY,
    DEFAULT_REUPLOAD_ITEM_DELAY_SECONDS,
    DEFAULT_SYNC_INTERVAL_SECONDS,
)
from .core.events import EventChannel
from .database.connection import DBConfig, DatabaseConnection, TransactionManager
from .hours.service import HoursCalculator
from .summary.mysql_summary_repository import MySQLSummaryRepository
from .summary.service import DailySummaryBuilder
from .sync.mysql_sync_repository import MySQLCheckpointRepository, MySQLSyncLogRepository
from .sync.reconciliation import ReconciliationEngine
from .sync.remote import HttpRemoteClient, RemoteClient
from .sync.scheduler import RetryPolicy, SyncScheduler
from .validation.service import AttendanceValidator


@dataclass(frozen=True)
class Container:
    events: EventChannel
    calculator: HoursCalculator

    summary_builder: DailySummaryBuilder
    validator: AttendanceValidator
    clock_service: ClockService
    engine: ReconciliationEngine
    scheduler: SyncScheduler


def _setting(settings: Any, name: str, default):
    return getattr(settings, name, default) if settings is not None else default


def assemble(
    *,
    attendance,
    summaries,
    checkpoints,
    sync_log,
    remote: RemoteClient,
    transactions: TransactionManager,
    settings: Any = None,
    scheduler_kwargs: dict | None = None,
) -> Container:
    """Wire services over any repository implementations (MySQL in production, fakes in tests)."""

    events = EventChannel()
    calculator = HoursCalculator()
    summary_builder = DailySummaryBuilder(attendance, summaries, transactions, events=events)
    validator = AttendanceValidator(attendance, summary_builder, transactions, calculator=calculator, events=events)
    clock_service = ClockService(attendance, summary_builder, transactions, calculator=calculator, events=events)
    engine = ReconciliationEngine(
        attendance=attendance,
        validator=validator,
        summaries=summary_builder,
        checkpoints=checkpoints,
        sync_log=sync_log,
        remote=remote,
        transactions=transactions,
        events=events,
        fetch_limit=int(_setting(settings, "FETCH_LIMIT", DEFAULT_FETCH_LIMIT)),
    )
    scheduler = SyncScheduler(
        engine,
        validator,
        events=events,
        interval_seconds=float(_setting(settings, "SYNC_INTERVAL_SECONDS", DEFAULT_SYNC_INTERVAL_SECONDS)),
        debounce_seconds=float(_setting(settings, "VALIDATION_DEBOUNCE_SECONDS", DEFAULT_DEBOUNCE_SECONDS)),
        reupload_capacity=int(_setting(settings, "REUPLOAD_QUEUE_CAPACITY", DEFAULT_REUPLOAD_CAPACITY)),
        reupload_item_delay=float(
            _setting(settings, "REUPLOAD_ITEM_DELAY_SECONDS", DEFAULT_REUPLOAD_ITEM_DELAY_SECONDS)
        ),
        retry=RetryPolicy(
            base_delay=float(_setting(settings, "RETRY_BASE_DELAY_SECONDS", DEFAULT_RETRY_BASE_DELAY_SECONDS)),
            max_delay=float(_setting(settings, "RETRY_MAX_DELAY_SECONDS", DEFAULT_RETRY_MAX_DELAY_SECONDS)),
            max_attempts=int(_setting(settings, "MAX_RETRY_ATTEMPTS", DEFAULT_MAX_RETRY_ATTEMPTS)),
        ),
        **(scheduler_kwargs or {}),
    )

    # Scans queue debounced validation; failed summary pushes land on the re-upload queue.
    clock_service.set_on_recorded(scheduler.queue_validation)
    engine.set_reupload_sink(scheduler.queue_reupload)

    return Container(
        events=events,
        calculator=calculator,
        summary_builder=summary_builder,
        validator=validator,
        clock_service=clock_service,
        engine=engine,
        scheduler=scheduler,
    )


def build_container(*, db_config: dict, settings: Any = None) -> Container:
    config = DBConfig(
        host=str(db_config["host"]),
        port=int(db_config.get("port", 3306)),
        user=str(db_config["user"]),
        password=str(db_config["password"]),
        database=str(db_config["database"]),
    )
    conn = DatabaseConnection(config)

    remote = HttpRemoteClient(
        str(_setting(settings, "SERVER_URL", "")),
        timeout=float(_setting(settings, "REMOTE_TIMEOUT_SECONDS", DEFAULT_REMOTE_TIMEOUT_SECONDS)),
    )
    return assemble(
        attendance=MySQLAttendanceRepository(conn),
        summaries=MySQLSummaryRepository(conn),
        checkpoints=MySQLCheckpointRepository(conn),
        sync_log=MySQLSyncLogRepository(conn),
        remote=remote,
        transactions=conn,
        settings=settings,
    )
