"""
Error classification and user feedback for the IMC planner.

The calculation engine raises ValidationError for bad input and nothing
else. Everything around it (the OpenAI narrative call, the JSON plan store,
benchmark card uploads) can fail in ways the user needs explained; this
module turns those failures into ErrorInfo records and UI notifications,
and retries the transient ones.
"""

import logging
import time
from typing import Dict, Any, Optional, Callable, Tuple
from enum import Enum
from dataclasses import dataclass
from datetime import datetime, timedelta
import json
import openai

from .plan_validator import ValidationError

# Set up logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


class ErrorSeverity(Enum):
    """Error severity levels."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(Enum):
    """Where an error came from."""
    API_ERROR = "api_error"
    DATA_ERROR = "data_error"
    STORAGE_ERROR = "storage_error"
    VALIDATION_ERROR = "validation_error"
    NETWORK_ERROR = "network_error"
    SYSTEM_ERROR = "system_error"


@dataclass
class ErrorInfo:
    """Structured error information."""
    category: ErrorCategory
    severity: ErrorSeverity
    message: str
    user_message: str
    technical_details: Optional[str] = None
    suggested_action: Optional[str] = None
    retry_possible: bool = False
    field: Optional[str] = None
    timestamp: datetime = None

    def __post_init__(self):
        if self.timestamp is None:
            self.timestamp = datetime.now()


class RetryConfig:
    """Configuration for retry mechanisms."""

    def __init__(self, max_attempts: int = 3, base_delay: float = 1.0,
                 exponential_backoff: bool = True, max_delay: float = 30.0):
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.exponential_backoff = exponential_backoff
        self.max_delay = max_delay

    def delay_for(self, attempt: int) -> float:
        if self.exponential_backoff:
            return min(self.base_delay * (2 ** attempt), self.max_delay)
        return self.base_delay


class ErrorHandler:
    """
    Centralized error handling for the planner's collaborators.

    Keeps a short history of handled errors for the diagnostics panel.
    """

    HISTORY_LIMIT = 100

    def __init__(self):
        self.error_history = []
        self.rate_limit_count = 0

    def handle_openai_error(self, error: Exception, context: str = "") -> ErrorInfo:
        """
        Classify a failure of the narrative generation call.

        Args:
            error: Exception raised by the OpenAI client
            context: Operation being performed

        Returns:
            ErrorInfo for the failure
        """
        status_code = getattr(error, 'status_code', None)
        if status_code is None and hasattr(error, 'response'):
            status_code = getattr(error.response, 'status_code', None)

        if isinstance(error, openai.AuthenticationError) or status_code == 401:
            return ErrorInfo(
                category=ErrorCategory.API_ERROR,
                severity=ErrorSeverity.CRITICAL,
                message=f"OpenAI authentication failed: {error}",
                user_message="The AI narrative service rejected the API key.",
                suggested_action="Set a valid OPENAI_API_KEY in Streamlit secrets or the .env file.",
                retry_possible=False
            )

        if isinstance(error, openai.RateLimitError) or status_code == 429:
            self.rate_limit_count += 1
            return ErrorInfo(
                category=ErrorCategory.API_ERROR,
                severity=ErrorSeverity.WARNING,
                message=f"OpenAI rate limit hit: {error}",
                user_message="The AI narrative service is busy. Retrying shortly.",
                suggested_action="Wait a minute before generating another plan.",
                retry_possible=True
            )

        if isinstance(error, openai.APITimeoutError) or "timeout" in str(error).lower():
            return ErrorInfo(
                category=ErrorCategory.NETWORK_ERROR,
                severity=ErrorSeverity.WARNING,
                message=f"OpenAI request timed out: {error}",
                user_message="The AI narrative request timed out.",
                suggested_action="Check your connection and try again.",
                retry_possible=True
            )

        if status_code is not None and status_code >= 500:
            return ErrorInfo(
                category=ErrorCategory.API_ERROR,
                severity=ErrorSeverity.ERROR,
                message=f"OpenAI server error ({status_code}): {error}",
                user_message="The AI narrative service had an internal error.",
                suggested_action="Try again in a few minutes. The budget numbers above are still valid.",
                retry_possible=True
            )

        return ErrorInfo(
            category=ErrorCategory.API_ERROR,
            severity=ErrorSeverity.ERROR,
            message=f"OpenAI error in {context}: {error}",
            user_message="The AI narrative could not be generated.",
            technical_details=str(error),
            suggested_action="Try again, or use the calculated budget split without a narrative.",
            retry_possible=True
        )

    def handle_storage_error(self, error: Exception, context: str = "") -> ErrorInfo:
        """Classify a failure reading or writing saved plans."""
        if isinstance(error, PermissionError):
            return ErrorInfo(
                category=ErrorCategory.STORAGE_ERROR,
                severity=ErrorSeverity.ERROR,
                message=f"Plan storage permission denied: {error}",
                user_message="Saved plans cannot be read or written due to file permissions.",
                suggested_action="Check that the PLANS_DIR directory is writable.",
                retry_possible=False
            )

        if isinstance(error, json.JSONDecodeError):
            return ErrorInfo(
                category=ErrorCategory.STORAGE_ERROR,
                severity=ErrorSeverity.ERROR,
                message=f"Corrupt plan file: {error}",
                user_message="A saved plan file is corrupted and was skipped.",
                technical_details=str(error),
                suggested_action="Delete or repair the damaged file in the plans directory.",
                retry_possible=False
            )

        if isinstance(error, FileNotFoundError):
            return ErrorInfo(
                category=ErrorCategory.STORAGE_ERROR,
                severity=ErrorSeverity.WARNING,
                message=f"Plan file not found: {error}",
                user_message="The requested plan no longer exists.",
                suggested_action="Refresh the saved plans list.",
                retry_possible=False
            )

        return ErrorInfo(
            category=ErrorCategory.STORAGE_ERROR,
            severity=ErrorSeverity.ERROR,
            message=f"Plan storage error in {context}: {error}",
            user_message="Saved plans could not be accessed.",
            technical_details=str(error),
            suggested_action="Try again. If it keeps failing, check disk space and PLANS_DIR.",
            retry_possible=False
        )

    def handle_data_error(self, error: Exception, context: str = "") -> ErrorInfo:
        """Classify a failure loading a benchmark card workbook."""
        error_str = str(error).lower()

        if isinstance(error, FileNotFoundError):
            return ErrorInfo(
                category=ErrorCategory.DATA_ERROR,
                severity=ErrorSeverity.WARNING,
                message=f"Benchmark card not found: {error}",
                user_message="The benchmark card file was not found; built-in benchmarks are in use.",
                suggested_action="Upload a benchmark card or fix BENCHMARK_FILE.",
                retry_possible=False
            )

        if "sheet" in error_str or "worksheet" in error_str:
            return ErrorInfo(
                category=ErrorCategory.DATA_ERROR,
                severity=ErrorSeverity.ERROR,
                message=f"Benchmark card sheet missing: {error}",
                user_message="The benchmark card is missing a Channels, Funnel or Settings sheet.",
                suggested_action="Use the benchmark card template with all three sheets.",
                retry_possible=False
            )

        return ErrorInfo(
            category=ErrorCategory.DATA_ERROR,
            severity=ErrorSeverity.ERROR,
            message=f"Benchmark card error in {context}: {error}",
            user_message="The benchmark card could not be read.",
            technical_details=str(error),
            suggested_action="Check the workbook format (.xlsx) and column names.",
            retry_possible=False
        )

    def handle_network_error(self, error: Exception, context: str = "") -> ErrorInfo:
        return ErrorInfo(
            category=ErrorCategory.NETWORK_ERROR,
            severity=ErrorSeverity.WARNING,
            message=f"Network error in {context}: {error}",
            user_message="A network problem interrupted the request.",
            suggested_action="Check your internet connection and try again.",
            retry_possible=True
        )

    def handle_validation_error(self, error: Exception, context: str = "") -> ErrorInfo:
        """Validation messages are written for the user, so pass them through."""
        return ErrorInfo(
            category=ErrorCategory.VALIDATION_ERROR,
            severity=ErrorSeverity.WARNING,
            message=f"Validation error in {context}: {error}",
            user_message=str(error),
            suggested_action="Correct the highlighted input and try again.",
            retry_possible=False,
            field=getattr(error, 'field', None)
        )

    def retry_with_backoff(self, func: Callable, config: RetryConfig = None,
                           context: str = "") -> Tuple[bool, Any, Optional[ErrorInfo]]:
        """
        Execute a function with retry logic and exponential backoff.

        Args:
            func: Zero-argument callable to execute
            config: Retry configuration
            context: Context for error reporting

        Returns:
            Tuple of (success, result, error_info)
        """
        if config is None:
            config = RetryConfig()

        error_info = None
        for attempt in range(config.max_attempts):
            try:
                return True, func(), None
            except Exception as e:
                error_info = self.classify_error(e, context)
                logger.warning(f"Attempt {attempt + 1}/{config.max_attempts} failed in {context}: {e}")

                if not error_info.retry_possible or attempt == config.max_attempts - 1:
                    break

                delay = config.delay_for(attempt)
                logger.info(f"Retrying in {delay} seconds...")
                time.sleep(delay)

        return False, None, error_info

    def classify_error(self, error: Exception, context: str = "") -> ErrorInfo:
        """
        Route an exception to the matching handler.

        Args:
            error: The exception to classify
            context: Operation being performed

        Returns:
            ErrorInfo for the exception
        """
        if isinstance(error, ValidationError):
            return self.handle_validation_error(error, context)

        if isinstance(error, openai.OpenAIError):
            return self.handle_openai_error(error, context)

        if isinstance(error, (ConnectionError, TimeoutError)):
            return self.handle_network_error(error, context)

        if isinstance(error, (OSError, json.JSONDecodeError)):
            if "benchmark" in context.lower():
                return self.handle_data_error(error, context)
            return self.handle_storage_error(error, context)

        if isinstance(error, (KeyError, ValueError)) and "benchmark" in context.lower():
            return self.handle_data_error(error, context)

        return ErrorInfo(
            category=ErrorCategory.SYSTEM_ERROR,
            severity=ErrorSeverity.ERROR,
            message=f"Unexpected error in {context}: {error}",
            user_message="An unexpected error occurred.",
            technical_details=str(error),
            suggested_action="Try again. If the problem persists, report the error details.",
            retry_possible=False
        )

    def create_user_notification(self, error_info: ErrorInfo) -> Dict[str, Any]:
        """
        Build the notification dict the UI renders.

        Args:
            error_info: Structured error information

        Returns:
            Dictionary with type, title, message and optional action/field
        """
        notification_type_map = {
            ErrorSeverity.INFO: "info",
            ErrorSeverity.WARNING: "warning",
            ErrorSeverity.ERROR: "error",
            ErrorSeverity.CRITICAL: "error"
        }

        notification = {
            'type': notification_type_map[error_info.severity],
            'title': self._get_error_title(error_info),
            'message': error_info.user_message,
            'timestamp': error_info.timestamp.isoformat(),
            'retry_possible': error_info.retry_possible
        }

        if error_info.suggested_action:
            notification['action'] = error_info.suggested_action
        if error_info.field:
            notification['field'] = error_info.field
        if error_info.technical_details and error_info.severity == ErrorSeverity.CRITICAL:
            notification['technical_details'] = error_info.technical_details

        return notification

    def _get_error_title(self, error_info: ErrorInfo) -> str:
        title_map = {
            ErrorCategory.API_ERROR: "AI Narrative Error",
            ErrorCategory.DATA_ERROR: "Benchmark Card Error",
            ErrorCategory.STORAGE_ERROR: "Saved Plans Error",
            ErrorCategory.VALIDATION_ERROR: "Input Error",
            ErrorCategory.NETWORK_ERROR: "Connection Error",
            ErrorCategory.SYSTEM_ERROR: "System Error"
        }
        return title_map.get(error_info.category, "Error")

    def log_error(self, error_info: ErrorInfo, context: str = ""):
        """Record the error in history and log it at its severity."""
        self.error_history.append(error_info)
        if len(self.error_history) > self.HISTORY_LIMIT:
            self.error_history = self.error_history[-self.HISTORY_LIMIT:]

        log_message = f"{context}: {error_info.message}"
        if error_info.severity == ErrorSeverity.CRITICAL:
            logger.critical(log_message)
        elif error_info.severity == ErrorSeverity.ERROR:
            logger.error(log_message)
        elif error_info.severity == ErrorSeverity.WARNING:
            logger.warning(log_message)
        else:
            logger.info(log_message)

    def get_error_statistics(self) -> Dict[str, Any]:
        """Counts of errors by category over the last 24 hours."""
        if not self.error_history:
            return {'total_errors': 0}

        cutoff = datetime.now() - timedelta(hours=24)
        recent_errors = [err for err in self.error_history if err.timestamp > cutoff]

        category_counts = {}
        for err in recent_errors:
            category_counts[err.category.value] = category_counts.get(err.category.value, 0) + 1

        return {
            'total_errors': len(self.error_history),
            'recent_errors_24h': len(recent_errors),
            'category_breakdown': category_counts,
            'rate_limit_hits': self.rate_limit_count
        }


# Global error handler instance
error_handler = ErrorHandler()
