from shared.metrics import ServiceMetrics

metrics = ServiceMetrics("realtime")

FEED_PUSHES_TOTAL = metrics.counter(
    "feed_pushes_total",
    "Full result sets delivered by live feeds.",
    labels=("feed",),
)
FEED_ERRORS_TOTAL = metrics.counter(
    "feed_errors_total",
    "Live feed failures (snapshot left unchanged).",
    labels=("feed",),
)
QUERY_ERRORS_TOTAL = metrics.counter(
    "query_errors_total",
    "One-shot query failures answered with an empty result.",
    labels=("query",),
)
TOP_ACTIVITY_REFRESH_SECONDS = metrics.histogram(
    "top_activity_refresh_seconds", "Latency of top pages/features recomputation."
)
ACTIVE_USERS = metrics.gauge("active_users", "Active users in the latest snapshot.")
SUBSCRIBERS = metrics.gauge("subscribers", "Registered snapshot subscribers.")
