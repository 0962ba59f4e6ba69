"""
Prometheus metrics for candidate uploads

UploadMetrics owns its collectors and their CollectorRegistry, so each
pipeline (and each test) gets an isolated set of counters instead of
process-wide globals.
"""
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)


class UploadMetrics:
    """
    Counters and histograms for batch uploads

    Attributes:
        registry: Registry the collectors are registered with
        rows_total: Rows by record_type and outcome (created, updated, failed)
        row_errors_total: Row errors by record_type and error_type
        batches_total: Batches by record_type and final status
        batch_duration_seconds: Wall time of process/retry runs
    """

    def __init__(self, registry: CollectorRegistry | None = None):
        self._build(registry or CollectorRegistry())

    def _build(self, registry: CollectorRegistry) -> None:
        self.registry = registry

        self.rows_total = Counter(
            name="upload_rows_total",
            documentation="Rows processed by upload batches",
            labelnames=["record_type", "outcome"],
            registry=registry,
        )

        self.row_errors_total = Counter(
            name="upload_row_errors_total",
            documentation="Rejected upload rows by error category",
            labelnames=["record_type", "error_type"],
            registry=registry,
        )

        self.batches_total = Counter(
            name="upload_batches_total",
            documentation="Upload batches by final status",
            labelnames=["record_type", "status"],
            registry=registry,
        )

        self.batch_duration_seconds = Histogram(
            name="upload_batch_duration_seconds",
            documentation="Time spent processing one upload batch",
            labelnames=["record_type"],
            buckets=[0.1, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0, 60.0, 120.0, 300.0],
            registry=registry,
        )

    def reset(self) -> None:
        """Drop every recorded value by rebuilding the collectors on a fresh registry."""
        self._build(CollectorRegistry())

    def record_row(self, record_type: str, outcome: str) -> None:
        self.rows_total.labels(record_type=record_type, outcome=outcome).inc()

    def record_row_error(self, record_type: str, error_type: str) -> None:
        self.row_errors_total.labels(record_type=record_type, error_type=error_type).inc()

    def record_batch(self, record_type: str, status: str, duration_seconds: float) -> None:
        """Record a batch reaching a terminal status."""
        self.batches_total.labels(record_type=record_type, status=status).inc()
        self.batch_duration_seconds.labels(record_type=record_type).observe(duration_seconds)

    def sample(self, name: str, **labels) -> float:
        """
        Current value of one sample (0.0 when it was never recorded).

        Args:
            name: Sample name, e.g. "upload_rows_total"
            **labels: Label values identifying the sample
        """
        value = self.registry.get_sample_value(name, labels or None)
        return value if value is not None else 0.0

    def render(self) -> bytes:
        """Metrics in Prometheus text exposition format."""
        return generate_latest(self.registry)

    @staticmethod
    def content_type() -> str:
        return CONTENT_TYPE_LATEST
