"""Thin MLflow helpers for generation spans and token metrics.

Metric logging is best-effort: a tracking server hiccup must never fail a
content job, so log_metrics() swallows MLflow errors after logging them.
"""

import logging
from contextlib import contextmanager

import mlflow

logger = logging.getLogger(__name__)


def init_tracking(tracking_uri: str, experiment_name: str) -> None:
    """Point MLflow at the tracking server and enable async logging."""
    mlflow.set_tracking_uri(tracking_uri)
    mlflow.set_experiment(experiment_name)
    mlflow.config.enable_async_logging()


@contextmanager
def start_span(name: str, span_type: str = "UNKNOWN"):
    """Open an MLflow span around a unit of work."""
    with mlflow.start_span(name=name, span_type=span_type) as span:
        yield span


def log_metrics(metrics: dict, step: int | None = None) -> None:
    try:
        mlflow.log_metrics(metrics, step=step)
    except Exception as e:
        logger.debug("MLflow metric logging failed: %s", e)
