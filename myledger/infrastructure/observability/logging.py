"""Structured JSON logging for the scheduler"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, TextIO
from pythonjsonlogger import jsonlogger

from myledger.config import settings
from myledger.domain.models import PostingResult

# Libraries whose INFO output drowns the scheduler's own records
QUIET_LOGGERS = ("sqlalchemy.engine", "httpx")


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Adds UTC timestamp, level and service name to every record"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = settings.service_name


def setup_logging(level: str = "INFO", stream: TextIO = sys.stdout, quiet: Iterable[str] = QUIET_LOGGERS) -> None:
    """Route the root logger to a single JSON handler"""
    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()

    handler = logging.StreamHandler(stream)
    handler.setFormatter(CustomJsonFormatter("%(timestamp)s %(level)s %(name)s %(message)s"))
    root.addHandler(handler)

    for name in quiet:
        logging.getLogger(name).setLevel(logging.WARNING)


def _posting_counts(result: PostingResult) -> Dict[str, int]:
    return {
        "posted": len(result.transaction_ids),
        "skipped": len(result.skipped),
        "failed": len(result.failures),
    }


def log_autopay_run(
    request_id: str,
    obligation_id: str,
    result: PostingResult,
    duration_ms: float,
) -> None:
    """One record per obligation per autopay pass"""
    level = logging.WARNING if result.partial else logging.INFO
    logging.log(
        level,
        "Autopay completed",
        extra={
            "request_id": request_id,
            "obligation_id": obligation_id,
            "step": "autopay_complete",
            "duration_ms": duration_ms,
            **_posting_counts(result),
        },
    )


def log_loan_update(
    request_id: str,
    loan_id: str,
    action: str,
    result: PostingResult,
    remaining_principal: str,
    paid_months: int,
) -> None:
    """Log a loan advance or settlement with the resulting state"""
    logging.info(
        "Loan updated",
        extra={
            "request_id": request_id,
            "loan_id": loan_id,
            "step": f"loan_{action}",
            "remaining_principal": remaining_principal,
            "paid_months": paid_months,
            **_posting_counts(result),
        },
    )
