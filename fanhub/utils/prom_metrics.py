"""
Prometheus metrics registration and helpers.

Exports:
- observe_request(...): record HTTP request metrics
- observe_ticket_scan(...): record admission attempts by result
- observe_coin_movement(...): record ledger credits and debits
- observe_payment_verification(...): record gateway verification outcomes
- metrics_latest(): return text exposition from correct registry (handles multiprocess)
- CONTENT_TYPE_LATEST: correct Prometheus content type
"""

import os
from prometheus_client import Counter, Histogram, CollectorRegistry, generate_latest, CONTENT_TYPE_LATEST
from prometheus_client import multiprocess


REQUEST_COUNTER = Counter(
    'fh_http_requests_total', 'Total HTTP requests', ['endpoint', 'status']
)

REQUEST_LATENCY = Histogram(
    'fh_http_request_latency_seconds', 'HTTP request latency seconds', ['endpoint']
)

TICKET_SCANS = Counter(
    'fh_ticket_scans_total', 'Ticket admission attempts', ['result']
)

COIN_MOVEMENTS = Counter(
    'fh_coin_movements_total', 'Coin ledger entries', ['direction', 'transaction_type']
)

COIN_VOLUME = Counter(
    'fh_coin_volume_total', 'Coins moved through the ledger', ['direction']
)

PAYMENT_VERIFICATIONS = Counter(
    'fh_payment_verifications_total', 'Payment verifications', ['context', 'outcome']
)


def observe_request(endpoint: str, status: int, latency_seconds: float) -> None:
    REQUEST_COUNTER.labels(endpoint=endpoint, status=str(status)).inc()
    REQUEST_LATENCY.labels(endpoint=endpoint).observe(latency_seconds)


def observe_ticket_scan(result: str) -> None:
    TICKET_SCANS.labels(result=result).inc()


def observe_coin_movement(direction: str, transaction_type: str, amount: int) -> None:
    COIN_MOVEMENTS.labels(direction=direction, transaction_type=transaction_type).inc()
    COIN_VOLUME.labels(direction=direction).inc(abs(amount))


def observe_payment_verification(context: str, outcome: str) -> None:
    PAYMENT_VERIFICATIONS.labels(context=context, outcome=outcome).inc()


def metrics_latest() -> bytes:
    """Return the Prometheus text exposition, multiprocess-aware if configured."""
    prom_mp_dir = os.getenv('PROMETHEUS_MULTIPROC_DIR')
    if prom_mp_dir:
        registry = CollectorRegistry()
        multiprocess.MultiProcessCollector(registry)
        return generate_latest(registry)
    return generate_latest()


__all__ = [
    'observe_request',
    'observe_ticket_scan',
    'observe_coin_movement',
    'observe_payment_verification',
    'metrics_latest',
    'CONTENT_TYPE_LATEST',
]
