"""Error types, stable codes, and failure classification."""

from attachguard.errors._types import (
    AttachError,
    AttachGuardError,
    AttemptTimeoutError,
    ClassifiedError,
    EngineError,
    ErrorKind,
    ProxyRetryError,
    RetriesExhaustedError,
    error_message,
)
from attachguard.errors.classify import (
    DEFAULT_SIGNATURES,
    ErrorClassifier,
    Signature,
    classify_error,
    extract_status,
    is_cross_origin_error,
    is_duplicate_attach_error,
)
from attachguard.errors.codes import ErrorCode

__all__ = [
    "DEFAULT_SIGNATURES",
    "AttachError",
    "AttachGuardError",
    "AttemptTimeoutError",
    "ClassifiedError",
    "EngineError",
    "ErrorClassifier",
    "ErrorCode",
    "ErrorKind",
    "ProxyRetryError",
    "RetriesExhaustedError",
    "Signature",
    "classify_error",
    "error_message",
    "extract_status",
    "is_cross_origin_error",
    "is_duplicate_attach_error",
]
