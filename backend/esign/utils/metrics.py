"""Prometheus metrics for signing and PDF export."""

from prometheus_client import Counter, Histogram

signatures_total = Counter(
    "esign_signatures_total",
    "Sign attempts by outcome or error code",
    ["outcome"],
)

hash_mismatches_total = Counter(
    "esign_hash_mismatches_total",
    "Reads that found content changed after signing",
)

pdf_export_latency_ms = Histogram(
    "esign_pdf_export_latency_ms",
    "PDF export latency in milliseconds",
    ["layout", "outcome"],
    buckets=[50, 100, 250, 500, 1000, 2000, 5000, 10000, 30000],
)

pdf_export_failures_total = Counter(
    "esign_pdf_export_failures_total",
    "PDF export failures",
    ["layout", "reason"],
)


class PrometheusSigningMetrics:
    """Prometheus-based signing metrics implementation."""

    def inc_signature(self, outcome: str) -> None:
        signatures_total.labels(outcome=outcome).inc()

    def inc_hash_mismatch(self) -> None:
        hash_mismatches_total.inc()


class PrometheusExportMetrics:
    """Prometheus-based PDF export metrics implementation."""

    def record_latency(self, layout: str, outcome: str, latency_ms: float) -> None:
        """Record export latency."""
        pdf_export_latency_ms.labels(layout=layout, outcome=outcome).observe(latency_ms)

    def inc_failure(self, layout: str, reason: str) -> None:
        """Increment failure counter."""
        pdf_export_failures_total.labels(layout=layout, reason=reason).inc()
