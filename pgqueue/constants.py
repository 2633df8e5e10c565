"""
Application constants.
Centralized location for all constant values used across the application.
"""

from datetime import UTC, datetime

# Storage layout
TASKS_TABLE = "pgqueue_tasks"
META_INFO_TABLE = "pgqueue_meta_info"
TASKS_PKEY = "pgqueue_tasks_pkey"
SCHEMA_VERSION_KEY = "schema_version"
TARGET_SCHEMA_VERSION = 2

# FOR UPDATE SKIP LOCKED requires PostgreSQL 9.5
MIN_SERVER_VERSION_NUM = 90500

# Arbitrary key for pg_advisory_xact_lock while bootstrapping the schema
BOOTSTRAP_LOCK_KEY = 0x70677175

# Tasks without a visibility delay are stored as eligible since the epoch
UNIX_ZERO = datetime(1970, 1, 1, tzinfo=UTC)

# Priorities are stored as SMALLINT
MIN_PRIORITY = -32768
MAX_PRIORITY = 32767

# Default values
DEFAULT_NAMESPACE = ""
DEFAULT_LIST_LIMIT = 100
# Idle seconds before the server aborts an unresolved claim; 0 disables
DEFAULT_CLAIM_TIMEOUT_SECONDS = 300.0

# Metrics names
METRIC_QUEUE_LEN = "queue_len"
METRIC_QUEUE_OLDEST_AGE = "queue_oldest_message_age_seconds"
METRIC_TASKS_CLAIMED = "tasks_claimed"
METRIC_TASKS_COMPLETED = "tasks_completed"
METRIC_TASK_DURATION = "task_duration_seconds"

# Trace span names
SPAN_PUSH = "pgqueue.push"
SPAN_SHIFT = "pgqueue.shift"
SPAN_CLAIM = "pgqueue.claim"
SPAN_PROCESS = "pgqueue.process"
