"""
Shared metrics configuration for the Eligibility Atom engine.
"""

from prometheus_client import Counter, Histogram, Gauge, Info, start_http_server, CollectorRegistry
from typing import Dict, Any, Optional


class MetricsCollector:
    """Centralized metrics collector for services.

    Metrics are registered against ``registry`` only when one is supplied, so
    several collectors (one per engine instance) can live in one process.
    """

    def __init__(self, service_name: str, registry: Optional[CollectorRegistry] = None):
        self.service_name = service_name
        self.registry = registry
        self._metrics: Dict[str, Any] = {}
        self._setup_metrics()

    def _setup_metrics(self):
        """Set up common metrics for the service."""

        # Service info
        self._metrics["service_info"] = Info(
            "service_info",
            "Service information",
            registry=self.registry
        )
        self._metrics["service_info"].info({
            "service": self.service_name,
            "version": "1.0.0"
        })

        # Error metrics
        self._metrics["errors_total"] = Counter(
            "errors_total",
            "Total errors",
            ["error_type", "service"],
            registry=self.registry
        )

        if self.service_name == "eligibility":
            self._setup_eligibility_metrics()

    def _setup_eligibility_metrics(self):
        """Set up atom execution metrics."""
        self._metrics["atom_executions_total"] = Counter(
            "atom_executions_total",
            "Total atom executions",
            ["outcome"],
            registry=self.registry
        )

        self._metrics["atom_execution_duration_seconds"] = Histogram(
            "atom_execution_duration_seconds",
            "Atom evaluation duration in seconds",
            ["atom_type"],
            registry=self.registry
        )

        self._metrics["atom_cache_lookups_total"] = Counter(
            "atom_cache_lookups_total",
            "Total result cache lookups",
            ["result"],
            registry=self.registry
        )

        self._metrics["atom_statistics_dropped_total"] = Counter(
            "atom_statistics_dropped_total",
            "Statistics updates dropped because the queue was full",
            registry=self.registry
        )

        self._metrics["execution_queue_depth"] = Gauge(
            "execution_queue_depth",
            "Evaluations waiting for a worker",
            registry=self.registry
        )

    def get_metric(self, name: str):
        """Get a metric by name."""
        return self._metrics.get(name)

    def start_metrics_server(self, port: int = 9090):
        """Start the Prometheus metrics server."""
        if self.registry is not None:
            start_http_server(port, registry=self.registry)
        else:
            start_http_server(port)

    def record_error(self, error_type: str, service: Optional[str] = None):
        """Record error metrics."""
        service_name = service or self.service_name
        self._metrics["errors_total"].labels(error_type=error_type, service=service_name).inc()

    def record_execution(self, outcome: str, atom_type: str, duration: float):
        """Record one atom evaluation."""
        self.increment_counter("atom_executions_total", outcome=outcome)
        self.observe_histogram("atom_execution_duration_seconds", duration, atom_type=atom_type)

    def record_cache_lookup(self, hit: bool):
        """Record a result cache lookup."""
        self.increment_counter("atom_cache_lookups_total", result="hit" if hit else "miss")

    def increment_counter(self, metric_name: str, **labels):
        """Increment a counter metric."""
        if metric_name in self._metrics:
            metric = self._metrics[metric_name]
            (metric.labels(**labels) if labels else metric).inc()

    def set_gauge(self, metric_name: str, value: float, **labels):
        """Set a gauge metric value."""
        if metric_name in self._metrics:
            metric = self._metrics[metric_name]
            (metric.labels(**labels) if labels else metric).set(value)

    def observe_histogram(self, metric_name: str, value: float, **labels):
        """Observe a histogram metric."""
        if metric_name in self._metrics:
            metric = self._metrics[metric_name]
            (metric.labels(**labels) if labels else metric).observe(value)


def get_metrics_collector(service_name: str, registry: Optional[CollectorRegistry] = None) -> MetricsCollector:
    """Get a metrics collector for a service."""
    return MetricsCollector(service_name, registry)
