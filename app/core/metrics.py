"""Application metrics using the Prometheus client library.

All metrics are defined here so there is a single inventory of what the
service measures.  Modules import the metric they own and increment it at
the point of action.

  COUNTER  : only goes up (events, grants, failures)
  GAUGE    : goes up and down (in-flight requests, queue depth)
  HISTOGRAM: bucketed observations (request latency)
"""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

# ---------------------------------------------------------------------------
# HTTP metrics (populated by the MetricsMiddleware)
# ---------------------------------------------------------------------------

REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total HTTP requests by method, endpoint, and status code",
    ["method", "endpoint", "status_code"],
)

REQUEST_DURATION = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
)

ACTIVE_REQUESTS = Gauge(
    "http_active_requests",
    "Number of HTTP requests currently being processed",
)

# ---------------------------------------------------------------------------
# Engine metrics
# ---------------------------------------------------------------------------

PROGRESS_EVENTS = Counter(
    "progress_events_total",
    "Committed progress mutations by kind",
    # lecture_touched|lecture_completed|assessment_submitted|
    # assessment_graded|course_completed
    ["event"],
)

ENROLLMENTS = Counter(
    "enrollments_total",
    "Enrollment attempts by outcome",
    ["result"],  # created|rejected|failed
)

BADGES_GRANTED = Counter(
    "badges_granted_total",
    "Badges newly granted to students",
)

POST_COMMIT_FAILURES = Counter(
    "post_commit_failures_total",
    "Best-effort hooks that failed after the primary write committed",
    ["hook"],  # badge_evaluation|notification
)

QUEUE_DEPTH = Gauge(
    "task_queue_depth",
    "Number of tasks waiting in a queue",
    ["queue_name"],
)
