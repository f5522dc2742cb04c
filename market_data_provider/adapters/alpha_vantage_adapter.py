"""Alpha Vantage adapter implementation.

This module provides an adapter for the Alpha Vantage API, implementing
the MarketDataAdapter interface for FX rates, daily security prices,
security metadata and symbol search.
"""

from datetime import date, datetime
from typing import Any, Dict, List, Mapping, Optional, Type, Union

from .base_adapter import MarketDataAdapter, ProviderResponse
from .config import ALPHA_VANTAGE, AdapterConfig, get_adapter_config
from .region_mapper import to_iso_code
from .responses import ensure_data_exists
from .security_resolver import (
    KEY_BEST_MATCHES,
    KEY_NAME,
    KEY_REGION,
    KEY_SYMBOL,
    SecurityResolver,
    valid_matches,
)
from .series import extract_series, warn_if_outside_compact_window
from .utils import HTTPClient, RateLimiter, normalize_symbol
from market_data_provider.models.data_models import (
    ExchangeRate,
    Price,
    SecurityProfile,
    SecuritySearchResult,
)
from market_data_provider.utils.exceptions import (
    ConfigurationError,
    EmptyResultError,
    InvalidExchangeRateError,
    InvalidSecurityPriceError,
    MarketDataProviderError,
    NoDataError,
)
from market_data_provider.utils.logging import get_logger

logger = get_logger(__name__)

# API functions
FUNC_CURRENCY_EXCHANGE_RATE = "CURRENCY_EXCHANGE_RATE"
FUNC_FX_DAILY = "FX_DAILY"
FUNC_TIME_SERIES_DAILY = "TIME_SERIES_DAILY"

# Response keys
KEY_REALTIME_RATE = "Realtime Currency Exchange Rate"
KEY_TIME_SERIES_FX = "Time Series FX (Daily)"
KEY_TIME_SERIES_DAILY = "Time Series (Daily)"
KEY_CLOSE = "4. close"

QUERY_ENDPOINT = "/query"
OUTPUT_SIZE = "compact"

DateLike = Union[date, datetime, str]


def _coerce_date(value: DateLike, field_name: str) -> date:
    """Accept a date, datetime or ISO date string."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value.strip())
        except ValueError:
            pass
    raise ValueError(f"{field_name} must be a date or ISO date string, got {value!r}")


def _require(value: Optional[str], field_name: str) -> str:
    value = normalize_symbol(value) if isinstance(value, str) else value
    if not value:
        raise ValueError(f"{field_name} cannot be empty")
    return value


class AlphaVantageAdapter(MarketDataAdapter):
    """Adapter for the Alpha Vantage API.

    Each adapter owns one HTTP client, built from its AdapterConfig, which
    paces requests to roughly one per second and retries transient network
    failures. Replies are classified before any data key is read, because
    Alpha Vantage reports most errors with HTTP 200.

    Every public operation returns a ProviderResponse. Invalid arguments
    raise ValueError before any request is made.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        config: Optional[AdapterConfig] = None,
        http_client: Optional[HTTPClient] = None
    ):
        """Initialize Alpha Vantage adapter.

        Args:
            api_key: API key; read from configuration/environment when omitted
            config: Adapter configuration; the global one when omitted
            http_client: Client to use instead of building one from the config
        """
        config = config or get_adapter_config(ALPHA_VANTAGE) or AdapterConfig(name=ALPHA_VANTAGE)
        config.ensure_valid()
        super().__init__(ALPHA_VANTAGE, config.settings)
        self.adapter_config = config

        self.api_key = api_key or config.get_credential('api_key')
        if not self.api_key:
            logger.warning("Alpha Vantage API key not found in configuration")

        self.http_client = http_client or HTTPClient(
            base_url=config.get_base_url(),
            headers={
                'User-Agent': 'MarketDataProvider/1.0',
                'Accept': 'application/json',
            },
            timeout=config.timeout,
            rate_limiter=RateLimiter(config.rate_limit_interval),
            max_retries=config.max_retries,
            retry_interval=config.retry_interval,
            backoff_factor=config.retry_backoff_factor,
            interval_randomness=config.retry_interval_randomness,
            default_params={'apikey': self.api_key} if self.api_key else None
        )

        self.security_resolver = SecurityResolver(self._request_api)

    def _validate_api_key(self) -> None:
        """Validate that API key is available.

        Raises:
            ConfigurationError: If API key is not configured
        """
        if not self.api_key:
            raise ConfigurationError(
                "Alpha Vantage API key not configured",
                config_key="api_key"
            )

    def _request_api(self, function: str, **params: Any) -> Dict[str, Any]:
        """Call one API function and reject explicit provider errors.

        Args:
            function: Alpha Vantage function name
            **params: Function-specific query parameters

        Returns:
            Decoded reply body

        Raises:
            ConfigurationError: If API key is not configured
            TransportError: If the HTTP exchange fails
            ProviderError: If the reply carries an error message
        """
        self._validate_api_key()
        parsed = self.http_client.get(QUERY_ENDPOINT, params={'function': function, **params})
        return ensure_data_exists(parsed)

    def _time_series(
        self,
        parsed: Dict[str, Any],
        key: str,
        error_class: Type[NoDataError],
        default_message: str
    ) -> Mapping[str, Any]:
        data = ensure_data_exists(parsed, key, error_class, default_message)
        if not isinstance(data, Mapping):
            raise error_class(f"API error: malformed {key} block", data_source=self.name)
        return data

    def healthy(self) -> ProviderResponse[bool]:
        """Check that the API answers a realtime rate request.

        Returns:
            ProviderResponse with True when the realtime rate key is present.
            Provider errors inside the check are reported as False.
        """
        def check() -> bool:
            self.logger.info("AlphaVantage: Checking health...")
            try:
                parsed = self._request_api(
                    FUNC_CURRENCY_EXCHANGE_RATE,
                    from_currency="USD",
                    to_currency="EUR"
                )
            except MarketDataProviderError as e:
                self.logger.warning(f"AlphaVantage: Health check failed: {e.message}")
                return False
            return KEY_REALTIME_RATE in parsed

        return self.with_provider_response('healthy', check)

    # ================================
    #          Exchange Rates
    # ================================

    def fetch_exchange_rate(
        self,
        from_currency: str,
        to_currency: str,
        date: DateLike
    ) -> ProviderResponse[ExchangeRate]:
        """Retrieve the closing rate of a currency pair on one date.

        Raises:
            ValueError: On empty currencies or an invalid date
        """
        from_currency = _require(from_currency, 'from_currency')
        to_currency = _require(to_currency, 'to_currency')
        target = _coerce_date(date, 'date')

        def fetch() -> ExchangeRate:
            self.logger.info(f"AlphaVantage: Fetching exchange rate for {from_currency}/{to_currency} on {target}")
            rates = self.fetch_exchange_rates(from_currency, to_currency, target, target).unwrap()
            if not rates:
                raise EmptyResultError(
                    f"No exchange rate found for {from_currency}/{to_currency} on date {target}",
                    date=target,
                    data_source=self.name
                )
            rate = rates[0]
            self.logger.info(f"AlphaVantage: Found rate: {rate.rate}")
            return rate

        return self.with_provider_response('fetch_exchange_rate', fetch)

    def fetch_exchange_rates(
        self,
        from_currency: str,
        to_currency: str,
        start_date: DateLike,
        end_date: DateLike
    ) -> ProviderResponse[List[ExchangeRate]]:
        """Retrieve daily closing rates of a currency pair.

        Args:
            from_currency: Base currency code
            to_currency: Quote currency code
            start_date: First date (inclusive)
            end_date: Last date (inclusive)

        Returns:
            ProviderResponse with rates sorted by date

        Raises:
            ValueError: On empty currencies, invalid dates or start after end
        """
        from_currency = _require(from_currency, 'from_currency')
        to_currency = _require(to_currency, 'to_currency')
        start = _coerce_date(start_date, 'start_date')
        end = _coerce_date(end_date, 'end_date')
        if start > end:
            raise ValueError(f"start_date ({start}) must not be after end_date ({end})")
        pair = f"{from_currency}/{to_currency}"

        def fetch() -> List[ExchangeRate]:
            warn_if_outside_compact_window(start, pair)
            self.logger.info(f"AlphaVantage: Fetching daily FX for {pair} from {start} to {end} ({OUTPUT_SIZE})")

            parsed = self._request_api(
                FUNC_FX_DAILY,
                from_symbol=from_currency,
                to_symbol=to_currency,
                outputsize=OUTPUT_SIZE
            )
            data = self._time_series(parsed, KEY_TIME_SERIES_FX, InvalidExchangeRateError, "No FX time series data")

            results = extract_series(
                data, start, end, KEY_CLOSE,
                lambda row_date, value: ExchangeRate(
                    date=row_date,
                    from_currency=from_currency,
                    to_currency=to_currency,
                    rate=value
                ),
                label=pair
            )

            self.logger.info(f"AlphaVantage: Successfully fetched {len(results)} exchange rates")
            return results

        return self.with_provider_response('fetch_exchange_rates', fetch)

    # ================================
    #           Securities
    # ================================

    def search_securities(
        self,
        keywords: str,
        country_code: Optional[str] = None,
        exchange_operating_mic: Optional[str] = None
    ) -> ProviderResponse[List[SecuritySearchResult]]:
        """Search securities by keyword.

        Args:
            keywords: Search text (usually a symbol or company name)
            country_code: Keep only results whose region resolves to this ISO
                alpha-2 code. Matches with an unresolvable region are dropped
                when this filter is set
            exchange_operating_mic: Accepted for interface compatibility;
                Alpha Vantage does not report exchange MICs

        Returns:
            ProviderResponse with the matches in provider order

        Raises:
            ValueError: On empty keywords
        """
        if not keywords or not keywords.strip():
            raise ValueError("keywords cannot be empty")
        keywords = keywords.strip()
        wanted_country = country_code.upper() if country_code else None

        def search() -> List[SecuritySearchResult]:
            parsed = self.security_resolver.fetch_symbol_search_raw(keywords)
            matches = valid_matches(
                ensure_data_exists(parsed, KEY_BEST_MATCHES, NoDataError, "Search yielded no data")
            )

            results = []
            for match in matches:
                country = to_iso_code(match.get(KEY_REGION))
                self.logger.debug(f"AlphaVantage: Found security {match.get(KEY_SYMBOL)} in {country}")
                if wanted_country and country != wanted_country:
                    self.logger.debug(f"AlphaVantage: Skipping {match.get(KEY_SYMBOL)}, region {match.get(KEY_REGION)!r} is not {wanted_country}")
                    continue
                results.append(SecuritySearchResult(
                    symbol=match.get(KEY_SYMBOL),
                    name=match.get(KEY_NAME),
                    logo_url=None,
                    exchange_operating_mic=None,
                    country_code=country
                ))

            self.logger.info(f"AlphaVantage: Found {len(results)} matches for '{keywords}'")
            return results

        return self.with_provider_response('search_securities', search)

    def fetch_security_info(
        self,
        symbol: str,
        exchange_operating_mic: Optional[str] = None
    ) -> ProviderResponse[SecurityProfile]:
        """Retrieve security metadata, from the overview or a search match.

        Raises:
            ValueError: On an empty symbol
        """
        symbol = _require(symbol, 'symbol')
        return self.with_provider_response(
            'fetch_security_info',
            lambda: self.security_resolver.profile(symbol, exchange_operating_mic)
        )

    def fetch_security_price(
        self,
        symbol: str,
        date: DateLike,
        exchange_operating_mic: Optional[str] = None
    ) -> ProviderResponse[Price]:
        """Retrieve the closing price of a security on one date.

        Raises:
            ValueError: On an empty symbol or invalid date
        """
        symbol = _require(symbol, 'symbol')
        target = _coerce_date(date, 'date')

        def fetch() -> Price:
            self.logger.info(f"AlphaVantage: Fetching security price for {symbol} on {target}")
            prices = self.fetch_security_prices(symbol, target, target, exchange_operating_mic).unwrap()
            if not prices:
                self.logger.warning(f"AlphaVantage: No price found for {symbol} on {target}")
                raise EmptyResultError(
                    f"No prices found for security {symbol} on date {target}",
                    symbol=symbol,
                    date=target,
                    data_source=self.name
                )
            price = prices[0]
            self.logger.info(f"AlphaVantage: Found price: {price.price} {price.currency or ''}".rstrip())
            return price

        return self.with_provider_response('fetch_security_price', fetch)

    def fetch_security_prices(
        self,
        symbol: str,
        start_date: DateLike,
        end_date: DateLike,
        exchange_operating_mic: Optional[str] = None
    ) -> ProviderResponse[List[Price]]:
        """Retrieve daily closing prices of a security.

        The quote currency is resolved first through the overview/search
        fallback, then the daily time series is fetched.

        Args:
            symbol: Security ticker symbol
            start_date: First date (inclusive)
            end_date: Last date (inclusive)
            exchange_operating_mic: Copied onto every Price

        Returns:
            ProviderResponse with prices sorted by date

        Raises:
            ValueError: On an empty symbol, invalid dates or start after end
        """
        symbol = _require(symbol, 'symbol')
        start = _coerce_date(start_date, 'start_date')
        end = _coerce_date(end_date, 'end_date')
        if start > end:
            raise ValueError(f"start_date ({start}) must not be after end_date ({end})")

        def fetch() -> List[Price]:
            currency = self.security_resolver.currency(symbol)

            warn_if_outside_compact_window(start, symbol)
            self.logger.info(f"AlphaVantage: Fetching daily time series for {symbol} from {start} to {end} ({OUTPUT_SIZE})")

            parsed = self._request_api(FUNC_TIME_SERIES_DAILY, symbol=symbol, outputsize=OUTPUT_SIZE)
            data = self._time_series(parsed, KEY_TIME_SERIES_DAILY, InvalidSecurityPriceError, "No time series data")

            results = extract_series(
                data, start, end, KEY_CLOSE,
                lambda row_date, value: Price(
                    symbol=symbol,
                    date=row_date,
                    price=value,
                    currency=currency,
                    exchange_operating_mic=exchange_operating_mic
                ),
                label=symbol
            )

            self.logger.info(f"AlphaVantage: Successfully fetched {len(results)} price points for {symbol}")
            return results

        return self.with_provider_response('fetch_security_prices', fetch)
