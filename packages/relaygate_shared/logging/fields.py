"""Canonical logging field names for cross-component consistency.

Keeping names centralized prevents drift between the gateway, registry, and
migration log lines that operators grep for.
"""

TIMESTAMP = "timestamp"
LEVEL = "level"
LOGGER = "logger"
MESSAGE = "message"
EVENT = "event"

# Invocation correlation fields.
REQUEST_ID = "request_id"
SESSION_ID = "session_id"
SERVICE_NAME = "service_name"
ACTION = "action"

# Public API invocation fields.
COMPONENT_ID = "component_id"
API_NAME = "api_name"
PUBLIC_API_INVOCATION_EVENT = "public_api_invocation"
PUBLIC_API_COMPLETION_EVENT = "public_api_completion"
SUCCESS = "success"
DURATION_MS = "duration_ms"
ERRORS = "errors"
ERROR_KIND = "error_kind"
OUTCOME = "outcome"
STAGE = "stage"
CONCERN = "concern"
PUBLIC_API_INSTRUMENTATION_FAILURE_EVENT = "public_api_instrumentation_failure"

# Migration fields.
MIGRATION_STEP = "migration_step"
MIGRATION_OUTCOME = "migration_outcome"

# Common process-level fields.
SERVICE = "service"
ENVIRONMENT = "environment"
