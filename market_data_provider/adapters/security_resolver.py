"""Two-tier security metadata resolution.

The company overview is the primary source. Alpha Vantage returns an
empty object for many ETFs and other non-equity instruments, in which case
a symbol search is used instead.
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional

from market_data_provider.models.data_models import SecurityProfile
from market_data_provider.utils.exceptions import NoDataError, NotFoundError
from market_data_provider.utils.logging import get_logger
from .responses import ADVISORY_KEYS, advisory_note

logger = get_logger(__name__)

FUNC_OVERVIEW = "OVERVIEW"
FUNC_SYMBOL_SEARCH = "SYMBOL_SEARCH"

KEY_BEST_MATCHES = "bestMatches"
KEY_SYMBOL = "1. symbol"
KEY_NAME = "2. name"
KEY_TYPE = "3. type"
KEY_REGION = "4. region"
KEY_CURRENCY = "8. currency"
KEY_OVERVIEW_NAME = "Name"
KEY_OVERVIEW_DESCRIPTION = "Description"
KEY_OVERVIEW_ASSET_TYPE = "AssetType"
KEY_OVERVIEW_CURRENCY = "Currency"

SOURCE_OVERVIEW = "overview"
SOURCE_SEARCH = "search"


@dataclass(frozen=True)
class ResolvedSecurity:
    """Raw record that answered a resolution, and where it came from."""
    symbol: str
    source: str
    record: Dict[str, Any]

    @property
    def from_overview(self) -> bool:
        return self.source == SOURCE_OVERVIEW


def is_empty_profile(profile: Dict[str, Any]) -> bool:
    """True when an overview body holds nothing but advisory text."""
    return not any(key not in ADVISORY_KEYS for key in profile)


def valid_matches(matches: Any) -> List[Mapping[str, Any]]:
    """Return the usable entries of a ``bestMatches`` block.

    A missing block counts as no matches. Entries that are not objects are
    skipped.

    Raises:
        NoDataError: If the block is not a list, or none of its entries
            are objects
    """
    if matches is None:
        return []
    if not isinstance(matches, list):
        raise NoDataError(f"API error: malformed {KEY_BEST_MATCHES} block", data_source='alpha_vantage')

    usable = [match for match in matches if isinstance(match, Mapping)]
    if matches and not usable:
        raise NoDataError(f"API error: malformed {KEY_BEST_MATCHES} block", data_source='alpha_vantage')
    if len(usable) < len(matches):
        logger.warning(f"AlphaVantage: Skipped {len(matches) - len(usable)} malformed search matches")
    return usable


def pick_match(matches: Optional[List[Mapping[str, Any]]], symbol: str) -> Optional[Mapping[str, Any]]:
    """Prefer the match whose symbol equals ``symbol``, else the first one."""
    matches = [match for match in matches or [] if isinstance(match, Mapping)]
    if not matches:
        return None
    for match in matches:
        if match.get(KEY_SYMBOL) == symbol:
            return match
    return matches[0]


class SecurityResolver:
    """Resolve security metadata from the overview, falling back to search.

    ``request_api`` is the adapter's request function: it takes the API
    function name and keyword query parameters and returns a reply body
    that has already been checked for explicit provider errors.
    """

    def __init__(self, request_api: Callable[..., Dict[str, Any]]):
        self.request_api = request_api

    def fetch_overview_raw(self, symbol: str) -> Dict[str, Any]:
        logger.info(f"AlphaVantage: Fetching security info (overview) for {symbol}")
        return self.request_api(FUNC_OVERVIEW, symbol=symbol)

    def fetch_symbol_search_raw(self, keywords: str) -> Dict[str, Any]:
        logger.info(f"AlphaVantage: Searching securities for keywords: {keywords}")
        return self.request_api(FUNC_SYMBOL_SEARCH, keywords=keywords)

    def resolve(self, symbol: str) -> ResolvedSecurity:
        """Find the record describing ``symbol``.

        Args:
            symbol: Security ticker symbol

        Returns:
            ResolvedSecurity from the overview, or from the best search match

        Raises:
            NotFoundError: If the overview is empty and the search has no match
            NoDataError: If the search reply holds a malformed match list
        """
        profile = self.fetch_overview_raw(symbol)
        if not is_empty_profile(profile):
            return ResolvedSecurity(symbol=symbol, source=SOURCE_OVERVIEW, record=profile)

        note = advisory_note(profile)
        if note:
            logger.warning(f"AlphaVantage: Overview for {symbol} only carried an advisory: {note}")
        logger.info(f"AlphaVantage: No overview profile found for {symbol}, trying SYMBOL_SEARCH fallback")

        search_data = self.fetch_symbol_search_raw(symbol)
        match = pick_match(valid_matches(search_data.get(KEY_BEST_MATCHES)), symbol)
        if match is None:
            logger.warning(f"AlphaVantage: No profile data found for {symbol} (and fallback failed)")
            raise NotFoundError(
                f"No profile data found for symbol {symbol}",
                symbol=symbol,
                data_source='alpha_vantage'
            )

        if match.get(KEY_SYMBOL) != symbol:
            logger.info(f"AlphaVantage: No exact search match for {symbol}, using {match.get(KEY_SYMBOL)}")

        return ResolvedSecurity(symbol=symbol, source=SOURCE_SEARCH, record=match)

    def profile(self, symbol: str, exchange_operating_mic: Optional[str] = None) -> SecurityProfile:
        """Build a SecurityProfile for ``symbol``.

        Description and currency are left empty when the profile comes from
        a search match, which carries neither.
        """
        resolved = self.resolve(symbol)
        record = resolved.record

        if resolved.from_overview:
            return SecurityProfile(
                symbol=symbol,
                name=record.get(KEY_OVERVIEW_NAME),
                description=record.get(KEY_OVERVIEW_DESCRIPTION),
                kind=record.get(KEY_OVERVIEW_ASSET_TYPE),
                exchange_operating_mic=exchange_operating_mic,
                currency=record.get(KEY_OVERVIEW_CURRENCY)
            )

        return SecurityProfile(
            symbol=record.get(KEY_SYMBOL, symbol),
            name=record.get(KEY_NAME),
            description=None,
            kind=record.get(KEY_TYPE),
            exchange_operating_mic=exchange_operating_mic,
            currency=None
        )

    def currency(self, symbol: str) -> Optional[str]:
        """Currency in which ``symbol`` is quoted, from whichever source answered."""
        resolved = self.resolve(symbol)
        key = KEY_OVERVIEW_CURRENCY if resolved.from_overview else KEY_CURRENCY
        currency = resolved.record.get(key)
        if not currency:
            logger.warning(f"AlphaVantage: No currency reported for {symbol} ({resolved.source})")
        return currency or None
