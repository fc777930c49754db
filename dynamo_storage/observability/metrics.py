"""
Metrics definitions for the storage connector.

This module defines Prometheus metrics for monitoring
connector operations and write batching.
"""

from prometheus_client import Counter, Histogram, Gauge

# 카운터 메트릭
operations = Counter(
    "storage_operations_total",
    "Connector operations by outcome",
    ["operation", "outcome"]
)

write_batches = Counter(
    "write_batches_total",
    "Write batches sent to the backend"
)

write_batch_resubmits = Counter(
    "write_batch_resubmits_total",
    "Unprocessed batch items resubmitted to the backend"
)

out_of_band_errors = Counter(
    "connector_out_of_band_errors_total",
    "Connection-level faults emitted on the error event",
    ["source"]
)

# 히스토그램 메트릭
operation_seconds = Histogram(
    "storage_operation_duration_seconds",
    "Time spent in connector operations",
    ["operation"],
    buckets=[0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1.0, 5.0, 30.0]
)

# 게이지 메트릭
write_buffer_pending = Gauge(
    "write_buffer_pending",
    "Writes waiting in the write buffer"
)
