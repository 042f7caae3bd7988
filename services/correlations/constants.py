"""
Constants for execution correlation.

Scoring weights and window bounds are a fixed contract: changing any of
them changes which candidates cross the acceptance threshold.
"""

# === Search Defaults ===

DEFAULT_TIME_WINDOW_MS = 30000
DEFAULT_MAX_DEPTH = 5

# Candidates must score strictly above this to be accepted
ACCEPTANCE_THRESHOLD = 0.5

MAX_CONFIDENCE = 1.0


# === Candidate Listing ===

# Most recent executions fetched per resolved webhook call
WEBHOOK_CANDIDATE_LIMIT = 10

# Most recent executions fetched per sub-workflow-capable workflow
SUB_WORKFLOW_CANDIDATE_LIMIT = 5


# === Time Windows (ms) ===

# Webhook pass accepts candidates starting up to 1s before the parent
WEBHOOK_WINDOW_GRACE_MS = 1000

# Sub-workflow pass has no grace period
SUB_WORKFLOW_WINDOW_GRACE_MS = 0


# === Webhook-Call Scoring ===

WEBHOOK_URL_BASE_SCORE = 0.3

# (upper bound ms exclusive, bonus, signal name), checked in order
WEBHOOK_TIMESTAMP_TIERS = (
    (500, 0.3, "timestamp_exact"),
    (2000, 0.2, "timestamp_close"),
    (5000, 0.1, "timestamp"),
)

WEBHOOK_USER_ID_WEIGHT = 0.3
WEBHOOK_CHAT_ID_WEIGHT = 0.2
WEBHOOK_CORRELATION_ID_WEIGHT = 0.5
WEBHOOK_RESPONSE_PATTERN_WEIGHT = 0.1

# Leading '-'-delimited segments compared for response id namespacing
RESPONSE_ID_PATTERN_SEGMENTS = 2


# === Sub-Workflow Scoring ===

SUB_WORKFLOW_TIMESTAMP_TIERS = (
    (2000, 0.3, "timestamp"),
    (5000, 0.2, "timestamp"),
)

SUB_WORKFLOW_USER_ID_WEIGHT = 0.4
SUB_WORKFLOW_CHAT_ID_WEIGHT = 0.3


# === Signal Field Names ===

# Keys read from node output payloads (and their nested "body")
USER_CONTEXT_FIELDS = ("user_id", "chat_id", "correlation_id", "response_id")

HTTP_URL_FIELDS = ("url", "requestUrl")
DEFAULT_HTTP_METHOD = "GET"

# Leading segment stripped from webhook URLs before index lookup
WEBHOOK_URL_PREFIX = "/webhook"
