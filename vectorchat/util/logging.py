"""
Structured operation logging for the grounding engine, storage and remote calls.
Document content is redacted before it reaches a log line.
"""

import logging
from typing import Any, Dict, List

SENSITIVE_FIELDS = ['content', 'embedding', 'prompt', 'text', 'api_key', 'avatar']


class StructuredLogger:
    """Structured logger for vector store, retrieval and remote API operations."""

    def __init__(self, name: str = "vectorchat"):
        self.logger = logging.getLogger(name)
        self.logger.setLevel(logging.INFO)

        # Create handler if not already set
        if not self.logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
            )
            handler.setFormatter(formatter)
            self.logger.addHandler(handler)

    def set_level(self, level: str) -> None:
        self.logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    def log_operation(self, operation: str, status: str, details: Dict[str, Any] = None, level: int = logging.INFO):
        """Log a structured operation."""
        message = f"Operation: {operation}, Status: {status}"
        if details:
            message += f", Details: {details}"

        self.logger.log(level, message)

    def log_vector_operation(self, operation: str, user_id: str, details: Dict[str, Any] = None, status: str = "success"):
        """Log a vector store operation (add, remove, clear, load)."""
        log_details = {"user_id": user_id}
        if details:
            log_details.update(sanitize_payload(details))

        self.log_operation(f"vector.{operation}", status, log_details)

    def log_retrieval(self, user_id: str, entry_id: str = None, score: float = None, cleared: bool = False, entries_scanned: int = 0):
        """Log the outcome of a similarity search."""
        log_details = {
            "user_id": user_id,
            "entries_scanned": entries_scanned,
            "best_entry_id": entry_id,
            "score": round(score, 4) if score is not None else None,
            "cleared_threshold": cleared
        }
        status = "matched" if cleared else "no_match"
        self.log_operation("retrieval.best_match", status, log_details)

    def log_grounding_dispatch(self, user_id: str, mode: str, augmented: bool = False, details: Dict[str, Any] = None):
        """Log which grounding path handled a message."""
        log_details = {"user_id": user_id, "mode": mode, "augmented": augmented}
        if details:
            log_details.update(sanitize_payload(details))

        self.log_operation("grounding.dispatch", "routed", log_details)

    def log_persistence_corruption(self, key: str, error: str):
        """Log a persisted slot that failed to parse and was reset."""
        log_details = {
            "key": key,
            "error": error[:100] if error else "",
            "recovery": "treated_as_empty"
        }
        self.log_operation("persistence.corruption", "recovered", log_details, level=logging.WARNING)

    def log_remote_call(self, service: str, model: str, duration_ms: float, status: str = "success", details: Dict[str, Any] = None):
        """Log a call to the remote generative AI API."""
        log_details = {"model": model, "duration_ms": round(duration_ms, 2)}
        if details:
            log_details.update(sanitize_payload(details))

        level = logging.INFO if status == "success" else logging.ERROR
        self.log_operation(f"remote.{service}", status, log_details, level=level)

    # Standard logging methods for compatibility
    def info(self, message: str) -> None:
        """Log an info message."""
        self.logger.info(message)

    def warning(self, message: str) -> None:
        """Log a warning message."""
        self.logger.warning(message)

    def error(self, message: str) -> None:
        """Log an error message."""
        self.logger.error(message)

    def debug(self, message: str) -> None:
        """Log a debug message."""
        self.logger.debug(message)


def audit_event(event_type: str, identifiers: Dict[str, Any], payload: Dict[str, Any] = None, sensitive_fields: List[str] = None):
    """General audit event logging with content redaction."""
    log_details = identifiers.copy() if identifiers else {}

    if payload:
        log_details["payload"] = sanitize_payload(payload, sensitive_fields=sensitive_fields)

    logger.log_operation(event_type.replace(".", "_"), "audit", log_details)


def sanitize_payload(payload: Any, reveal_sensitive: bool = False, sensitive_fields: List[str] = None) -> Any:
    """Sanitize payloads for logging.

    Sensitive keys are replaced with "[REDACTED]", long strings are truncated
    and nested dicts/lists are walked recursively.
    """
    if sensitive_fields is None:
        sensitive_fields = SENSITIVE_FIELDS

    if isinstance(payload, dict):
        sanitized = {}
        for k, v in payload.items():
            if reveal_sensitive or k not in sensitive_fields:
                sanitized[k] = sanitize_payload(v, reveal_sensitive, sensitive_fields)
            else:
                sanitized[k] = "[REDACTED]"
        return sanitized
    elif isinstance(payload, str):
        # Truncate long strings
        return payload[:100] + "..." if len(payload) > 100 else payload
    elif isinstance(payload, list):
        return [sanitize_payload(item, reveal_sensitive, sensitive_fields) for item in payload]
    else:
        return payload


# Global logger instance
logger = StructuredLogger()
