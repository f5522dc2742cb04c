"""Provider adapters for market data retrieval.

This package contains the Alpha Vantage adapter and the request,
classification and resolution helpers it is built from.
"""

from .base_adapter import MarketDataAdapter, ProviderResponse
from .alpha_vantage_adapter import AlphaVantageAdapter
from .config import AdapterConfig, AdapterConfigManager, get_adapter_config_manager, get_adapter_config
from .region_mapper import to_iso_code
from .utils import HTTPClient, RateLimiter, normalize_symbol

__all__ = [
    'MarketDataAdapter',
    'ProviderResponse',
    'AlphaVantageAdapter',
    'AdapterConfig',
    'AdapterConfigManager',
    'get_adapter_config_manager',
    'get_adapter_config',
    'to_iso_code',
    'HTTPClient',
    'RateLimiter',
    'normalize_symbol'
]
