"""Base adapter interface for market data providers.

This module defines the uniform result type returned by every provider
operation and the common interface that provider adapters implement.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date
from typing import Any, Callable, Dict, Generic, List, Optional, TypeVar

from market_data_provider.models.data_models import (
    ExchangeRate,
    Price,
    SecurityProfile,
    SecuritySearchResult,
)
from market_data_provider.utils.exceptions import MarketDataProviderError
from market_data_provider.utils.logging import get_logger

logger = get_logger(__name__)

T = TypeVar('T')


@dataclass(frozen=True)
class ProviderResponse(Generic[T]):
    """Success-or-error result of a provider operation.

    Exactly one of ``data`` and ``error`` is meaningful: ``error`` is None on
    success. Callers branch on ``success`` instead of catching exceptions.
    """
    data: Optional[T] = None
    error: Optional[MarketDataProviderError] = None

    @property
    def success(self) -> bool:
        return self.error is None

    @classmethod
    def ok(cls, data: T) -> 'ProviderResponse[T]':
        return cls(data=data)

    @classmethod
    def err(cls, error: MarketDataProviderError) -> 'ProviderResponse[T]':
        return cls(error=error)

    def unwrap(self) -> T:
        """Return the data, raising the carried error on failure."""
        if self.error is not None:
            raise self.error
        return self.data


class MarketDataAdapter(ABC):
    """Base interface for market data provider adapters.

    Every public operation returns a ProviderResponse. Typed provider errors
    raised inside an operation are turned into the error variant by
    ``with_provider_response``; anything else propagates.
    """

    def __init__(self, name: str, config: Dict[str, Any] = None):
        """Initialize the adapter.

        Args:
            name: Name of the data provider
            config: Adapter settings
        """
        self.name = name
        self.config = config or {}
        self.logger = get_logger(f"{__name__}.{name}")

    def with_provider_response(self, operation: str, func: Callable[[], T]) -> ProviderResponse[T]:
        """Run ``func`` and wrap its outcome.

        Args:
            operation: Operation name used in log messages
            func: Zero-argument callable doing the work

        Returns:
            ProviderResponse holding the return value or the typed error
        """
        try:
            return ProviderResponse.ok(func())
        except MarketDataProviderError as e:
            self.logger.error(f"{self.name}: {operation} failed: {e.message}", extra={'error': e.to_dict()})
            return ProviderResponse.err(e)

    @abstractmethod
    def healthy(self) -> ProviderResponse[bool]:
        """Check that the provider answers with usable data."""

    @abstractmethod
    def fetch_exchange_rate(self, from_currency: str, to_currency: str, date: date) -> ProviderResponse[ExchangeRate]:
        """Retrieve the rate of one currency pair on one date."""

    @abstractmethod
    def fetch_exchange_rates(
        self,
        from_currency: str,
        to_currency: str,
        start_date: date,
        end_date: date
    ) -> ProviderResponse[List[ExchangeRate]]:
        """Retrieve daily rates of one currency pair over an inclusive range."""

    @abstractmethod
    def search_securities(
        self,
        keywords: str,
        country_code: Optional[str] = None,
        exchange_operating_mic: Optional[str] = None
    ) -> ProviderResponse[List[SecuritySearchResult]]:
        """Search securities by keyword."""

    @abstractmethod
    def fetch_security_info(
        self,
        symbol: str,
        exchange_operating_mic: Optional[str] = None
    ) -> ProviderResponse[SecurityProfile]:
        """Retrieve descriptive metadata for a security."""

    @abstractmethod
    def fetch_security_price(
        self,
        symbol: str,
        date: date,
        exchange_operating_mic: Optional[str] = None
    ) -> ProviderResponse[Price]:
        """Retrieve the closing price of a security on one date."""

    @abstractmethod
    def fetch_security_prices(
        self,
        symbol: str,
        start_date: date,
        end_date: date,
        exchange_operating_mic: Optional[str] = None
    ) -> ProviderResponse[List[Price]]:
        """Retrieve daily closing prices of a security over an inclusive range."""

    def __str__(self) -> str:
        return f"{self.__class__.__name__}(name='{self.name}')"
