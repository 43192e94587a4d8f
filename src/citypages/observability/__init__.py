"""Observability — structured logging and MLflow tracing helpers."""

from citypages.observability.logging import get_correlation_id, setup_logging
from citypages.observability.tracing import init_tracking, log_metrics, start_span

__all__ = ["get_correlation_id", "init_tracking", "log_metrics", "setup_logging", "start_span"]
