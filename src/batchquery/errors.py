"""
Error handling utilities for batch query operations.

This module provides the exception hierarchy raised by the balance batcher
and the multicaller, plus an error handler that classifies and logs
failures with useful context.
"""

from typing import Optional, Dict, Any
import logging

logger = logging.getLogger(__name__)


class BatchError(Exception):
    """Base exception for batch operations."""
    pass


class EncodingError(BatchError):
    """Raised when call arguments could not be packed."""

    def __init__(
        self,
        message: str,
        target: Optional[str] = None,
        method: Optional[str] = None
    ):
        super().__init__(message)
        self.target = target
        self.method = method


class DispatchError(BatchError):
    """Raised when the contract call itself failed (network, node, revert)."""

    def __init__(self, message: str, target: Optional[str] = None):
        super().__init__(message)
        self.target = target


class DecodingError(BatchError):
    """Raised when response bytes could not be unpacked."""

    def __init__(
        self,
        message: str,
        target: Optional[str] = None,
        method: Optional[str] = None
    ):
        super().__init__(message)
        self.target = target
        self.method = method


class IntegrityError(BatchError):
    """Raised when a decoded response does not match the shape of the request."""

    def __init__(self, message: str, address: Optional[str] = None):
        super().__init__(message)
        self.address = address


class ErrorHandler:
    """
    Centralized error logging for batch operations.

    Classifies errors into categories so that rate limits, network
    problems and contract reverts show up at the right log level.
    """

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(__name__)

    def classify_error(self, error: Exception) -> str:
        """
        Classify an error into a category for logging.

        Args:
            error: Exception to classify

        Returns:
            Error category string
        """
        error_str = str(error).lower()

        if any(keyword in error_str for keyword in ['rate limit', 'too many requests', '429']):
            return 'rate_limit'

        if any(keyword in error_str for keyword in ['connection', 'timeout', 'network', 'dns']):
            return 'network'

        if any(keyword in error_str for keyword in ['revert', 'execution reverted', 'out of gas']):
            return 'contract'

        if any(keyword in error_str for keyword in ['invalid', 'bad request', '400']):
            return 'validation'

        return 'unknown'

    def log_error(self, error: Exception, context: Dict[str, Any]):
        """
        Log error with appropriate level and context.

        Args:
            error: Exception to log
            context: Additional context for logging
        """
        error_category = self.classify_error(error)

        log_data = {
            'error_type': type(error).__name__,
            'error_category': error_category,
            'error_message': str(error),
            **context
        }

        if error_category == 'validation':
            self.logger.warning("Validation error occurred", extra=log_data)
        elif error_category == 'contract':
            self.logger.error("Contract execution failed", extra=log_data)
        # Rate limits are expected under load
        elif error_category == 'rate_limit':
            self.logger.info("Rate limit encountered", extra=log_data)
        else:
            self.logger.warning("Batch operation error", extra=log_data)
