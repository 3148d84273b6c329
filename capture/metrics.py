from shared.metrics import ServiceMetrics

metrics = ServiceMetrics("capture")

EVENTS_ENQUEUED_TOTAL = metrics.counter(
    "events_enqueued_total",
    "Events accepted into the in-memory queue.",
    labels=("event_type",),
)
EVENTS_DROPPED_TOTAL = metrics.counter(
    "events_dropped_total",
    "Events discarded before queueing (sampling or exclusion).",
    labels=("reason",),
)
EVENTS_FLUSHED_TOTAL = metrics.counter(
    "events_flushed_total", "Events written to the store."
)
FLUSH_FAILURES_TOTAL = metrics.counter(
    "flush_failures_total", "Batch writes rejected by the store."
)
FLUSH_LATENCY_SECONDS = metrics.histogram(
    "flush_latency_seconds",
    "Latency of event batch writes.",
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0),
)
QUEUE_CURRENT_SIZE = metrics.gauge(
    "queue_current_size", "Events waiting for the next flush."
)
SESSIONS_TOTAL = metrics.counter(
    "sessions_total", "Session lifecycle transitions.", labels=("transition",)
)
