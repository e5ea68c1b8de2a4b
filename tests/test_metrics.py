"""Tests for metrics collector."""

from prometheus_client import CollectorRegistry

from ftps_client.metrics.prometheus import MetricsCollector, get_metrics


def value(registry: CollectorRegistry, name: str, labels: dict | None = None) -> float:
    result = registry.get_sample_value(name, labels or {})
    return result if result is not None else 0.0


class TestMetricsCollector:
    """Tests for MetricsCollector."""

    def test_success_updates_counters(self) -> None:
        """Test a successful operation is counted with its bytes."""
        registry = CollectorRegistry()
        metrics = MetricsCollector(registry=registry)

        metrics.record_operation_started()
        metrics.record_operation_success("download", 0.2, bytes_transferred=100, direction="download")

        assert value(registry, "ftps_operations_total", {"operation": "download", "status": "success"}) == 1
        assert value(registry, "ftps_transfer_bytes_total", {"direction": "download"}) == 100
        assert value(registry, "ftps_operations_in_progress") == 0

    def test_failure_records_error_code(self) -> None:
        """Test a failure is counted with its error code."""
        registry = CollectorRegistry()
        metrics = MetricsCollector(registry=registry)

        metrics.record_operation_started()
        metrics.record_operation_failure("upload", 0.1, error_code="550")

        assert value(registry, "ftps_operations_total", {"operation": "upload", "status": "failed"}) == 1
        assert value(registry, "ftps_errors_total", {"operation": "upload", "error_code": "550"}) == 1

    def test_sessions_gauge(self) -> None:
        """Test session open/close tracking."""
        registry = CollectorRegistry()
        metrics = MetricsCollector(registry=registry)

        metrics.record_session_opened()
        metrics.record_session_opened()
        metrics.record_session_closed()

        assert value(registry, "ftps_sessions_open") == 1

    def test_get_metrics_is_singleton(self) -> None:
        """Test the global collector is reused."""
        assert get_metrics() is get_metrics()
