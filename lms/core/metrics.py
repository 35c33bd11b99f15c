"""Prometheus metric inventory for lms-service.

Every metric the service exports is declared here; the owning module
imports it and increments/observes at the point of action.  Scraped via
GET /metrics (see lms/api/metrics_endpoint.py).
"""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

# ---------------------------------------------------------------------------
# HTTP metrics (populated by MetricsMiddleware)
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
# Learning
# ---------------------------------------------------------------------------

QUIZ_ATTEMPTS = Counter(
    "quiz_attempts_total",
    "Graded quiz attempts by outcome",
    ["passed"],  # "true" or "false"
)

ENROLLMENT_TRANSITIONS = Counter(
    "enrollment_transitions_total",
    "Enrollment status changes by target status",
    ["status"],  # NotStarted|InProgress|Completed
)

CERTIFICATES_ISSUED = Counter(
    "certificates_issued_total",
    "Certificates issued on course completion",
)

CACHE_OPERATIONS = Counter(
    "cache_operations_total",
    "Progress cache lookups by result",
    ["operation"],  # "hit" or "miss"
)

# ---------------------------------------------------------------------------
# Chat
# ---------------------------------------------------------------------------

CHAT_CONNECTIONS = Gauge(
    "chat_connections",
    "Open chat hub WebSocket connections",
)

CHAT_MESSAGES = Counter(
    "chat_messages_total",
    "Chat messages persisted and broadcast",
)

CHAT_REJECTIONS = Counter(
    "chat_rejections_total",
    "Chat hub invocations rejected by authorization or validation",
    ["operation"],  # "connect", "join", "send" or "unknown"
)
