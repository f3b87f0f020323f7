"""
Shared metrics configuration for the authenticated-fetch gateway.
"""

from prometheus_client import Counter, Histogram, Info, CollectorRegistry
from typing import Dict, Any, Optional
import time
from contextlib import contextmanager


class MetricsCollector:
    """Centralized metrics collector for the gateway.

    Each collector owns its registry unless one is supplied, so several
    gateways (or test cases) can coexist in one process without clashing
    on metric names.
    """

    def __init__(self, service_name: str, registry: Optional[CollectorRegistry] = None):
        self.service_name = service_name
        self.registry = registry if registry is not None else CollectorRegistry()
        self._metrics: Dict[str, Any] = {}
        self._setup_metrics()

    def _setup_metrics(self):
        """Set up gateway metrics."""

        self._metrics["service_info"] = Info(
            "authfetch_service",
            "Gateway information",
            registry=self.registry
        )
        self._metrics["service_info"].info({
            "service": self.service_name,
            "version": "1.0.0"
        })

        self._metrics["requests_total"] = Counter(
            "authfetch_requests_total",
            "Total fetch calls seen by the interceptor",
            ["classification"],
            registry=self.registry
        )

        self._metrics["request_duration_seconds"] = Histogram(
            "authfetch_request_duration_seconds",
            "Duration of backend-bound fetch calls including retries",
            registry=self.registry
        )

        self._metrics["refresh_total"] = Counter(
            "authfetch_refresh_total",
            "Underlying session refresh operations",
            ["outcome"],
            registry=self.registry
        )

        self._metrics["auth_retries_total"] = Counter(
            "authfetch_auth_retries_total",
            "Requests retried after an auth failure",
            registry=self.registry
        )

        self._metrics["auth_failures_total"] = Counter(
            "authfetch_auth_failures_total",
            "Auth failure notifications emitted",
            ["reason"],
            registry=self.registry
        )

        self._metrics["notifications_suppressed_total"] = Counter(
            "authfetch_notifications_suppressed_total",
            "Auth failure notifications suppressed by the cooldown gate",
            registry=self.registry
        )

    def get_metric(self, name: str):
        """Get a metric by name."""
        return self._metrics.get(name)

    @contextmanager
    def time_operation(self, operation_name: str, **labels):
        """Context manager to time an operation."""
        start_time = time.time()
        try:
            yield
        finally:
            self.observe_histogram(operation_name, time.time() - start_time, **labels)

    def increment_counter(self, metric_name: str, **labels):
        """Increment a counter metric."""
        metric = self._metrics.get(metric_name)
        if metric is None:
            return
        if labels:
            metric = metric.labels(**labels)
        metric.inc()

    def observe_histogram(self, metric_name: str, value: float, **labels):
        """Observe a histogram metric."""
        metric = self._metrics.get(metric_name)
        if metric is None:
            return
        if labels:
            metric = metric.labels(**labels)
        metric.observe(value)

    def get_sample(self, sample_name: str, **labels) -> float:
        """Read the current value of a sample, 0.0 if never recorded."""
        value = self.registry.get_sample_value(sample_name, labels or None)
        return value if value is not None else 0.0


def get_metrics_collector(service_name: str, registry: Optional[CollectorRegistry] = None) -> MetricsCollector:
    """Get a metrics collector for the gateway."""
    return MetricsCollector(service_name, registry)
