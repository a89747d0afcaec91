"""Custom exceptions for the rolling-window rate limiter."""

from typing import Optional


class RateLimiterError(Exception):
    """Base class for rate limiter exceptions.
    
    Being rate limited is not an error: a blocked action is reported through
    ``RateLimitInfo.blocked``. Only misconfiguration and store failures raise.
    """
    
    def __init__(self, message: str = "Rate limiter error"):
        self.message = message
        super().__init__(message)


class ConfigurationError(RateLimiterError, ValueError):
    """Raised when a limiter is constructed with invalid options.
    
    Only raised synchronously from constructors, never from limiting calls.
    """
    
    def __init__(self, message: str = "Invalid rate limiter configuration", option: Optional[str] = None):
        self.option = option
        super().__init__(message)


class StoreError(RateLimiterError):
    """Raised when the shared store fails to execute a batch.
    
    The original client exception is chained as ``__cause__``. The limiter
    never retries: a batch may have applied before the failure was observed,
    and a blind retry could count the same action twice.
    """
    
    def __init__(
        self,
        message: str = "Rate limit store operation failed",
        operation: Optional[str] = None,
        key: Optional[str] = None,
    ):
        self.operation = operation
        self.key = key
        super().__init__(message)
