"""Custom exceptions for the market data provider."""

import traceback
from typing import Optional, Dict, Any
from datetime import datetime, timezone


class MarketDataProviderError(Exception):
    """Base exception for market data provider errors."""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        original_exception: Optional[Exception] = None
    ):
        """Initialize the exception with enhanced error information.

        Args:
            message: Human-readable error message
            error_code: Unique error code for categorization
            context: Additional context information
            original_exception: Original exception that caused this error
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.__class__.__name__.upper()
        self.context = context or {}
        self.original_exception = original_exception
        self.timestamp = datetime.now(timezone.utc)
        self.traceback_str = traceback.format_exc() if original_exception else None

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            'error_type': self.__class__.__name__,
            'error_code': self.error_code,
            'message': self.message,
            'context': self.context,
            'timestamp': self.timestamp.isoformat(),
            'original_exception': str(self.original_exception) if self.original_exception else None,
            'traceback': self.traceback_str
        }

    def __str__(self) -> str:
        """String representation with enhanced information."""
        base_msg = f"[{self.error_code}] {self.message}"
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            base_msg += f" (Context: {context_str})"
        return base_msg


class ConfigurationError(MarketDataProviderError):
    """Raised when configuration is invalid or missing."""

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        config_file: Optional[str] = None,
        **kwargs
    ):
        context = kwargs.pop('context', {})
        if config_key:
            context['config_key'] = config_key
        if config_file:
            context['config_file'] = config_file

        kwargs.setdefault('error_code', "CONFIGURATION_ERROR")
        super().__init__(message, context=context, **kwargs)


class DataRetrievalError(MarketDataProviderError):
    """Raised when data cannot be retrieved from the provider."""

    def __init__(
        self,
        message: str,
        symbol: Optional[str] = None,
        data_source: Optional[str] = None,
        **kwargs
    ):
        context = kwargs.pop('context', {})
        if symbol:
            context['symbol'] = symbol
        if data_source:
            context['data_source'] = data_source

        kwargs.setdefault('error_code', "DATA_RETRIEVAL_ERROR")
        super().__init__(message, context=context, **kwargs)


class TransportError(DataRetrievalError):
    """Raised when the HTTP exchange itself fails.

    Covers connection failures and timeouts once retries are exhausted,
    HTTP error statuses, and bodies that cannot be decoded as JSON.
    """

    def __init__(
        self,
        message: str,
        url: Optional[str] = None,
        status_code: Optional[int] = None,
        retry_count: Optional[int] = None,
        **kwargs
    ):
        context = kwargs.pop('context', {})
        if url:
            context['url'] = url
        if status_code:
            context['status_code'] = status_code
        if retry_count is not None:
            context['retry_count'] = retry_count

        self.status_code = status_code
        kwargs.setdefault('error_code', "TRANSPORT_ERROR")
        super().__init__(message, context=context, **kwargs)


class ProviderError(DataRetrievalError):
    """Raised when the upstream body carries an explicit error message."""

    def __init__(self, message: str, **kwargs):
        kwargs.setdefault('error_code', "PROVIDER_ERROR")
        super().__init__(message, **kwargs)


class NoDataError(DataRetrievalError):
    """Raised when the expected data key is missing without an error message.

    This is usually a disguised rate limit; the advisory note is kept on
    the exception when the provider sent one.
    """

    def __init__(
        self,
        message: str,
        note: Optional[str] = None,
        **kwargs
    ):
        context = kwargs.pop('context', {})
        if note:
            context['note'] = note

        self.note = note
        kwargs.setdefault('error_code', "NO_DATA_ERROR")
        super().__init__(message, context=context, **kwargs)


class InvalidExchangeRateError(NoDataError):
    """Raised when the FX time series is missing from a reply."""


class InvalidSecurityPriceError(NoDataError):
    """Raised when the daily price time series is missing from a reply."""


class NotFoundError(DataRetrievalError):
    """Raised when security resolution exhausted every source."""

    def __init__(self, message: str, **kwargs):
        kwargs.setdefault('error_code', "NOT_FOUND_ERROR")
        super().__init__(message, **kwargs)


class EmptyResultError(DataRetrievalError):
    """Raised when a single-date lookup finds no record for that date."""

    def __init__(
        self,
        message: str,
        date: Optional[Any] = None,
        **kwargs
    ):
        context = kwargs.pop('context', {})
        if date is not None:
            context['date'] = str(date)

        kwargs.setdefault('error_code', "EMPTY_RESULT_ERROR")
        super().__init__(message, context=context, **kwargs)
