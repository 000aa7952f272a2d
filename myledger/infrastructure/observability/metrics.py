"""Prometheus metrics for autopay postings, loan payments and request latency"""

from prometheus_client import Counter, Histogram

from myledger.domain.models import PostingResult

# Autopay metrics
autopay_postings_counter = Counter(
    "myledger_autopay_postings_total",
    "Recurring bill occurrences processed by autopay",
    ["outcome"],  # posted | skipped | failed
)

# Loan metrics
loan_payments_counter = Counter(
    "myledger_loan_payments_total",
    "Loan payments posted to the ledger",
    ["repayment_type", "kind"],  # kind: scheduled | settlement
)

loan_posting_failures_counter = Counter(
    "myledger_loan_posting_failures_total",
    "Loan payments that could not be posted",
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_autopay(result: PostingResult) -> None:
    """Count autopay outcomes per occurrence"""
    if result.transaction_ids:
        autopay_postings_counter.labels(outcome="posted").inc(len(result.transaction_ids))
    if result.skipped:
        autopay_postings_counter.labels(outcome="skipped").inc(len(result.skipped))
    if result.failures:
        autopay_postings_counter.labels(outcome="failed").inc(len(result.failures))


def record_loan_postings(repayment_type: str, kind: str, result: PostingResult) -> None:
    if result.transaction_ids:
        loan_payments_counter.labels(repayment_type=repayment_type, kind=kind).inc(len(result.transaction_ids))
    if result.failures:
        loan_posting_failures_counter.inc(len(result.failures))
