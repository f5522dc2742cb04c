"""Map Alpha Vantage region strings to ISO 3166-1 alpha-2 codes.

The ``4. region`` field of a symbol search is free text. It is usually a
country name but sometimes an exchange or city name, so resolution runs
an ordered chain of lookups and the first hit wins.
"""

from typing import Callable, List, Optional, Tuple

import pycountry

# Alpha Vantage sometimes reports the exchange or city instead of the country
EXCHANGE_MAPPING = {
    "Frankfurt": "DE",
    "XETRA": "DE",
    "Dusseldorf": "DE",
    "Berlin": "DE",
    "Munich": "DE",
    "Stuttgart": "DE",
    "Tokyo": "JP",
    "London": "GB",
    "Toronto": "CA",
    "Paris": "FR",
    "Amsterdam": "NL",
    "Brussels": "BE",
    "Lisbon": "PT",
    "Hong Kong": "HK",
    "Shanghai": "CN",
    "Shenzhen": "CN",
    "Bolsa de Madrid": "ES",
    "Milan": "IT",
    "Sao Paulo": "BR",
    "Mexico": "MX",
    "Mumbai": "IN",
    "Brazil/Sao Paolo": "BR",
    "India/Bombay": "IN",
}

INFORMAL_ALIASES = {
    "USA": "US",
    "United States": "US",
    "UK": "GB",
    # ISO names that differ from everyday English or local usage
    "Turkey": "TR",
    "Burma": "MM",
    "Vietnam": "VN",
    "South Korea": "KR",
    "Russia": "RU",
    "Deutschland": "DE",
    "Holland": "NL",
}

# Shorter queries match too many names as substrings ("UK" -> Ukraine)
MIN_FUZZY_LENGTH = 4


def from_exchange_table(region: str) -> Optional[str]:
    return EXCHANGE_MAPPING.get(region)


def _country_names(country) -> List[str]:
    names = (getattr(country, attr, None) for attr in ('name', 'official_name', 'common_name'))
    return [name for name in names if isinstance(name, str)]


def from_country_reference(region: str) -> Optional[str]:
    """Look the region up in the ISO 3166 country reference.

    An exact lookup (name, official name, common name or code, case
    insensitive) is tried first, then a fuzzy search. Fuzzy hits also come
    from subdivision names ("Texas" -> US), so only countries whose own
    names contain the query count, and only when they point at a single
    country.
    """
    try:
        return pycountry.countries.lookup(region).alpha_2
    except LookupError:
        pass

    if len(region) < MIN_FUZZY_LENGTH:
        return None

    try:
        matches = pycountry.countries.search_fuzzy(region)
    except LookupError:
        return None

    query = region.casefold()
    codes = {
        country.alpha_2 for country in matches
        if any(query in name.casefold() for name in _country_names(country))
    }
    if len(codes) == 1:
        return codes.pop()
    return None


def from_informal_aliases(region: str) -> Optional[str]:
    return INFORMAL_ALIASES.get(region)


RESOLVERS: Tuple[Callable[[str], Optional[str]], ...] = (
    from_exchange_table,
    from_country_reference,
    from_informal_aliases,
)


def to_iso_code(region: Optional[str]) -> Optional[str]:
    """Resolve a region string to an ISO alpha-2 code.

    Args:
        region: Free-text region as returned by the provider

    Returns:
        Two-letter country code, or None when nothing matches
    """
    if not region or not isinstance(region, str):
        return None

    region = region.strip()
    if not region:
        return None

    for resolver in RESOLVERS:
        code = resolver(region)
        if code:
            return code
    return None
