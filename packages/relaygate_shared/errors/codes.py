"""Shared error code and kind constants.

Codes are machine-readable identifiers recorded in logs and audit rows. Kinds
are the coarser names exposed on the wire as ``{kind, message}``.
"""

# Validation
VALIDATION_ERROR = "VALIDATION_ERROR"
INVALID_ARGUMENT = "INVALID_ARGUMENT"
SCHEMA_VIOLATION = "SCHEMA_VIOLATION"

# Not found
NOT_FOUND = "NOT_FOUND"
SERVICE_NOT_FOUND = "SERVICE_NOT_FOUND"
SESSION_NOT_FOUND = "SESSION_NOT_FOUND"

# Conflict
CONFLICT = "CONFLICT"
ALREADY_EXISTS = "ALREADY_EXISTS"

# Policy / budget
POLICY_DENIED = "POLICY_DENIED"
RATE_LIMITED = "RATE_LIMITED"

# Dependency / upstream
UPSTREAM_FAILURE = "UPSTREAM_FAILURE"
UPSTREAM_TIMEOUT = "UPSTREAM_TIMEOUT"
UPSTREAM_UNAVAILABLE = "UPSTREAM_UNAVAILABLE"
STREAM_ABORTED = "STREAM_ABORTED"

# Internal
MIGRATION_FAILURE = "MIGRATION_FAILURE"
INTERNAL_ERROR = "INTERNAL_ERROR"
UNEXPECTED_EXCEPTION = "UNEXPECTED_EXCEPTION"

# Wire kinds
KIND_NOT_FOUND = "NotFound"
KIND_ALREADY_EXISTS = "AlreadyExists"
KIND_SCHEMA_VIOLATION = "SchemaViolation"
KIND_DENIED = "Denied"
KIND_RATE_LIMITED = "RateLimited"
KIND_UPSTREAM_ERROR = "UpstreamError"
KIND_STREAM_ABORTED = "StreamAborted"
KIND_MIGRATION_FAILURE = "MigrationFailure"
KIND_INTERNAL = "Internal"
