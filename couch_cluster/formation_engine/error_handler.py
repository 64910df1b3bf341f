"""
Error Handler - Centralized categorization and logging of formation errors

Every formation error is fatal: there is no retry and no rollback, because
partially clustered nodes cannot be safely un-clustered. The handler's job is
to classify each failure, log it at the right level and keep a history that
can be summarized at the end of a run.
"""
import logging
from typing import Optional, Any, Dict, List
from enum import Enum
from dataclasses import dataclass
from ..errors import (
    ConfigError, NetworkError, ProtocolRejectionError, StateMismatchError, VerificationError
)

logging.basicConfig(format='%(levelname)-5s | %(filename)s:%(lineno)-3d | %(message)s', level=logging.INFO, force=True)
logger = logging.getLogger(__name__)


class ErrorSeverity(Enum):
    """Severity levels for errors"""
    HIGH = "high"  # Run aborted by a remote condition
    FATAL = "fatal"  # Run could not start or hit an unexpected failure


class ErrorCategory(Enum):
    """Categories of errors for targeted reporting"""
    CONFIGURATION = "configuration"
    NETWORK_ERROR = "network_error"
    PROTOCOL_REJECTION = "protocol_rejection"
    STATE_MISMATCH = "state_mismatch"
    VERIFICATION = "verification"
    UNEXPECTED = "unexpected"


@dataclass
class ErrorContext:
    """Context information for an error"""
    category: ErrorCategory
    severity: ErrorSeverity
    message: str
    exception: Optional[Exception] = None
    phase: Optional[str] = None
    node_id: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None


def categorize(exception: Exception) -> ErrorCategory:
    """Map an exception onto its error category"""
    if isinstance(exception, ConfigError):
        return ErrorCategory.CONFIGURATION
    if isinstance(exception, NetworkError):
        return ErrorCategory.NETWORK_ERROR
    if isinstance(exception, ProtocolRejectionError):
        return ErrorCategory.PROTOCOL_REJECTION
    if isinstance(exception, StateMismatchError):
        return ErrorCategory.STATE_MISMATCH
    if isinstance(exception, VerificationError):
        return ErrorCategory.VERIFICATION
    return ErrorCategory.UNEXPECTED


class ErrorHandler:
    """
    Centralized error handling for cluster formation.

    Provides:
    - Error categorization and severity assessment
    - Severity-based logging
    - Error history and summary reporting
    """

    def __init__(self):
        self.error_history: List[ErrorContext] = []

    def context_from_exception(self, exception: Exception, phase: Optional[str] = None) -> ErrorContext:
        """Build an ErrorContext from a raised exception"""
        category = categorize(exception)

        if category in (ErrorCategory.CONFIGURATION, ErrorCategory.UNEXPECTED):
            severity = ErrorSeverity.FATAL
        else:
            severity = ErrorSeverity.HIGH

        metadata = {}
        for attr in ('status', 'reason', 'expected', 'actual', 'kind'):
            value = getattr(exception, attr, None)
            if value is not None:
                metadata[attr] = value

        return ErrorContext(
            category=category,
            severity=severity,
            message=str(exception),
            exception=exception,
            phase=phase or getattr(exception, 'phase', None) or getattr(exception, 'action', None),
            node_id=getattr(exception, 'node', None),
            metadata=metadata or None
        )

    def handle_error(self, error_context: ErrorContext) -> None:
        """Log and record an error. Every formation error ends the run."""
        self._log_error(error_context)
        self.error_history.append(error_context)

    def _log_error(self, error_context: ErrorContext):
        """Log error with appropriate level based on severity"""
        log_message = f"[{error_context.category.value}] {error_context.message}"

        if error_context.phase:
            log_message = f"[{error_context.phase}] {log_message}"

        if error_context.severity == ErrorSeverity.FATAL:
            logger.critical(log_message)
        else:
            logger.error(log_message)

        if error_context.exception and error_context.category == ErrorCategory.UNEXPECTED:
            logger.exception(error_context.exception)

    def get_error_summary(self) -> Dict[str, Any]:
        """Get summary of all errors encountered"""
        errors_by_category = {}
        errors_by_severity = {}

        for error in self.error_history:
            category = error.category.value
            errors_by_category[category] = errors_by_category.get(category, 0) + 1

            severity = error.severity.value
            errors_by_severity[severity] = errors_by_severity.get(severity, 0) + 1

        return {
            'total_errors': len(self.error_history),
            'by_category': errors_by_category,
            'by_severity': errors_by_severity,
            'recent_errors': [
                {
                    'category': e.category.value,
                    'severity': e.severity.value,
                    'message': e.message,
                    'node': e.node_id
                }
                for e in self.error_history[-10:]
            ]
        }

    def clear_history(self):
        """Clear error history"""
        self.error_history.clear()
        logger.info("Error history cleared")


_error_handler = None


def get_error_handler() -> ErrorHandler:
    """Get the global error handler instance"""
    global _error_handler
    if _error_handler is None:
        _error_handler = ErrorHandler()
    return _error_handler
