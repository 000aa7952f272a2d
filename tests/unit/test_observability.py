"""Unit tests for structured logging and metrics helpers"""

import io
import json
import logging
from datetime import date
from prometheus_client import REGISTRY
from myledger.domain.models import PostingResult
from myledger.infrastructure.observability.logging import log_autopay_run, setup_logging
from myledger.infrastructure.observability.metrics import record_autopay


def test_log_records_are_json_with_service():
    stream = io.StringIO()
    setup_logging("INFO", stream=stream)
    try:
        result = PostingResult(transaction_ids=["tx_1"], skipped=[date(2025, 1, 2)])
        log_autopay_run("req-1", "ob_rent", result, 1.5)
    finally:
        setup_logging("INFO")

    record = json.loads(stream.getvalue().strip().splitlines()[-1])
    assert record["message"] == "Autopay completed"
    assert record["level"] == "INFO"
    assert record["service"] == "myledger-scheduler"
    assert record["request_id"] == "req-1"
    assert record["posted"] == 1
    assert record["skipped"] == 1
    assert record["failed"] == 0


def test_partial_autopay_logged_as_warning():
    stream = io.StringIO()
    setup_logging("INFO", stream=stream)
    try:
        result = PostingResult(failures=[(date(2025, 1, 2), "account missing")])
        log_autopay_run("req-2", "ob_rent", result, 0.3)
    finally:
        setup_logging("INFO")

    record = json.loads(stream.getvalue().strip().splitlines()[-1])
    assert record["level"] == "WARNING"


def test_noisy_loggers_quieted():
    setup_logging("DEBUG")
    assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING
    setup_logging("INFO")


def test_record_autopay_counts_outcomes():
    def sample(outcome):
        return REGISTRY.get_sample_value("myledger_autopay_postings_total", {"outcome": outcome}) or 0

    before = {o: sample(o) for o in ("posted", "skipped", "failed")}
    record_autopay(
        PostingResult(
            transaction_ids=["tx_1", "tx_2"],
            skipped=[date(2025, 1, 2)],
            failures=[(date(2025, 1, 9), "ledger unavailable")],
        )
    )

    assert sample("posted") - before["posted"] == 2
    assert sample("skipped") - before["skipped"] == 1
    assert sample("failed") - before["failed"] == 1
