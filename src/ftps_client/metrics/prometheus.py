"""Prometheus metrics collector."""

from typing import Optional

from prometheus_client import (
    REGISTRY,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    Info,
    start_http_server,
)
import structlog

from ftps_client import __version__


logger = structlog.get_logger(__name__)


class MetricsCollector:
    """Collector for Prometheus metrics."""

    def __init__(self, registry: Optional[CollectorRegistry] = None) -> None:
        """Initialize metrics.

        Args:
            registry: Registry to register the metrics with. Defaults to
                the global prometheus_client registry.
        """
        registry = registry if registry is not None else REGISTRY

        # Application info
        self.info = Info(
            "ftps_client",
            "FTPS client library information",
            registry=registry,
        )
        self.info.info({
            "version": __version__,
        })

        # Operation counters
        self.operations_total = Counter(
            "ftps_operations_total",
            "Total number of FTPS operations",
            ["operation", "status"],
            registry=registry,
        )

        self.operations_in_progress = Gauge(
            "ftps_operations_in_progress",
            "Number of FTPS operations currently in progress",
            registry=registry,
        )

        self.operation_duration = Histogram(
            "ftps_operation_duration_seconds",
            "Operation duration in seconds",
            ["operation", "status"],
            buckets=[0.1, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0, 60.0],
            registry=registry,
        )

        # Transfer metrics
        self.transfer_bytes = Counter(
            "ftps_transfer_bytes_total",
            "Total bytes transferred",
            ["direction"],
            registry=registry,
        )

        # Session metrics
        self.sessions_open = Gauge(
            "ftps_sessions_open",
            "Number of open FTPS sessions",
            registry=registry,
        )

        # Error metrics
        self.errors_total = Counter(
            "ftps_errors_total",
            "Total number of errors",
            ["operation", "error_code"],
            registry=registry,
        )

    def record_operation_started(self) -> None:
        """Record an operation has started."""
        self.operations_in_progress.inc()

    def record_operation_success(
        self,
        operation: str,
        duration_seconds: float,
        bytes_transferred: int = 0,
        direction: Optional[str] = None,
    ) -> None:
        """Record a successful operation.

        Args:
            operation: Operation name (upload, download, list, size).
            duration_seconds: Duration in seconds.
            bytes_transferred: Number of bytes moved over the data channel.
            direction: Transfer direction (upload/download), if any.
        """
        self.operations_in_progress.dec()
        self.operations_total.labels(operation=operation, status="success").inc()
        self.operation_duration.labels(
            operation=operation,
            status="success",
        ).observe(duration_seconds)

        if direction and bytes_transferred > 0:
            self.transfer_bytes.labels(direction=direction).inc(bytes_transferred)

    def record_operation_failure(
        self,
        operation: str,
        duration_seconds: float,
        error_code: str,
    ) -> None:
        """Record a failed operation.

        Args:
            operation: Operation name.
            duration_seconds: Duration in seconds.
            error_code: Error code.
        """
        self.operations_in_progress.dec()
        self.operations_total.labels(operation=operation, status="failed").inc()
        self.operation_duration.labels(
            operation=operation,
            status="failed",
        ).observe(duration_seconds)
        self.errors_total.labels(operation=operation, error_code=error_code).inc()

    def record_session_opened(self) -> None:
        """Record a session was opened."""
        self.sessions_open.inc()

    def record_session_closed(self) -> None:
        """Record a session was closed."""
        self.sessions_open.dec()


# Global metrics instance
_metrics: MetricsCollector | None = None


def get_metrics() -> MetricsCollector:
    """Get the global metrics collector.

    Returns:
        MetricsCollector instance.
    """
    global _metrics
    if _metrics is None:
        _metrics = MetricsCollector()
    return _metrics


def start_metrics_server(port: int = 9090) -> None:
    """Start the Prometheus metrics HTTP server.

    Args:
        port: Port to listen on.
    """
    start_http_server(port)
    logger.info("metrics_server_started", port=port)
