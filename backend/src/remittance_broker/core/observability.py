"""Observability helpers (structlog logging + Prometheus metrics)."""

from __future__ import annotations

import hashlib
import logging
from typing import Optional

import structlog
from prometheus_client import CollectorRegistry, Counter, Histogram, generate_latest
from prometheus_client.exposition import CONTENT_TYPE_LATEST

from .config import Settings


registry = CollectorRegistry()

REQUEST_LATENCY = Histogram(
    "remittance_request_seconds",
    "Latency per endpoint",
    labelnames=("endpoint",),
    buckets=(0.01, 0.05, 0.1, 0.25, 0.5, 1, 2, 5),
    registry=registry,
)

ORDERS_CREATED = Counter(
    "remittance_orders_created_total",
    "Transfer orders persisted by the execution engine",
    labelnames=("transfer_mode", "currency"),
    registry=registry,
)

VERIFICATION_OUTCOMES = Counter(
    "remittance_verification_total",
    "Identity verification attempts by outcome",
    labelnames=("outcome",),
    registry=registry,
)

DISCLOSURES = Counter(
    "remittance_disclosures_total",
    "Refresh requests by outcome",
    labelnames=("outcome",),
    registry=registry,
)

ESCALATIONS = Counter(
    "remittance_escalations_total",
    "Escalations raised by level",
    labelnames=("level",),
    registry=registry,
)

SETTLEMENT_NOTIFICATIONS = Counter(
    "remittance_settlement_notifications_total",
    "Settlement notifications received by reported status",
    labelnames=("status",),
    registry=registry,
)


def configure_logging(settings: Optional[Settings] = None) -> None:
    """Initialise structlog with JSON (or console) output."""

    level_name = (settings.log_level if settings else "INFO").upper()
    level = getattr(logging, level_name, logging.INFO)
    renderer = (
        structlog.dev.ConsoleRenderer()
        if settings is not None and settings.log_format == "console"
        else structlog.processors.JSONRenderer()
    )

    logging.basicConfig(level=level)
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        cache_logger_on_first_use=True,
    )


def mask_identifier(value: str | None) -> str | None:
    if not value:
        return value
    digest = hashlib.sha256(value.encode("utf-8")).hexdigest()
    return f"hash:{digest[:12]}"


def get_metrics() -> bytes:
    """Render the private registry in Prometheus exposition format."""
    return generate_latest(registry)


def get_metrics_content_type() -> str:
    return CONTENT_TYPE_LATEST


__all__ = [
    "configure_logging",
    "mask_identifier",
    "get_metrics",
    "get_metrics_content_type",
    "REQUEST_LATENCY",
    "ORDERS_CREATED",
    "VERIFICATION_OUTCOMES",
    "DISCLOSURES",
    "ESCALATIONS",
    "SETTLEMENT_NOTIFICATIONS",
]
