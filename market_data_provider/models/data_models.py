"""Data models for the market data provider.

This module contains the immutable domain records produced by provider
adapters, plus a helper to turn record lists into pandas frames.
"""

from dataclasses import dataclass, asdict
from datetime import date
from decimal import Decimal
from typing import Dict, List, Optional, Sequence, Union

import pandas as pd

from market_data_provider.utils.exceptions import DataRetrievalError


@dataclass(frozen=True)
class ExchangeRate:
    """Daily closing rate for one currency pair."""
    date: date
    from_currency: str
    to_currency: str
    rate: Decimal

    def __post_init__(self):
        if self.rate <= 0:
            raise ValueError(f"Exchange rate must be positive: {self.rate}")


@dataclass(frozen=True)
class Price:
    """Daily closing price for one security.

    ``currency`` comes from the security metadata lookup that accompanied
    the time-series request, not from the time series itself.
    """
    symbol: str
    date: date
    price: Decimal
    currency: Optional[str] = None
    exchange_operating_mic: Optional[str] = None

    def __post_init__(self):
        if self.price <= 0:
            raise ValueError(f"Price must be positive: {self.price}")


@dataclass(frozen=True)
class SecuritySearchResult:
    """One entry of a symbol search."""
    symbol: str
    name: Optional[str]
    logo_url: Optional[str] = None
    exchange_operating_mic: Optional[str] = None
    country_code: Optional[str] = None


@dataclass(frozen=True)
class SecurityProfile:
    """Descriptive metadata for a security.

    ``description`` and ``currency`` are only known when the profile was
    built from the company overview; profiles built from a search match
    leave them as None.
    """
    symbol: str
    name: Optional[str]
    links: Optional[Dict[str, str]] = None
    logo_url: Optional[str] = None
    description: Optional[str] = None
    kind: Optional[str] = None
    exchange_operating_mic: Optional[str] = None
    currency: Optional[str] = None


def records_to_dataframe(records: Sequence[Union[ExchangeRate, Price]]) -> pd.DataFrame:
    """Convert rate or price records into a date-indexed DataFrame.

    Args:
        records: ExchangeRate or Price records (mixing the two is rejected)

    Returns:
        DataFrame indexed by date (ascending), one column per record field
        and the decimal value as float in a 'Close' column

    Raises:
        DataRetrievalError: If the records are of mixed types
    """
    if not records:
        return pd.DataFrame()

    record_types = {type(record) for record in records}
    if len(record_types) > 1:
        raise DataRetrievalError(
            f"Cannot build a frame from mixed record types: {sorted(t.__name__ for t in record_types)}"
        )

    rows: List[dict] = []
    for record in records:
        row = asdict(record)
        value = row.pop('rate') if isinstance(record, ExchangeRate) else row.pop('price')
        row['Close'] = float(value)
        rows.append(row)

    df = pd.DataFrame(rows)
    df['date'] = pd.to_datetime(df['date'])
    df = df.set_index('date')
    return df.sort_index()
