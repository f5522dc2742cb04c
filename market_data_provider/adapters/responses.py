"""Classification of Alpha Vantage reply bodies.

Alpha Vantage answers almost every failure with HTTP 200 and a JSON body
of varying shape: an ``Error Message`` for invalid calls, a ``Note`` or
``Information`` advisory when throttled, or simply a body without the
requested data key. Every reply goes through ``classify_response`` before
any key-specific extraction.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Type

from market_data_provider.utils.exceptions import NoDataError, ProviderError
from market_data_provider.utils.logging import get_logger

logger = get_logger(__name__)

KEY_ERROR_MESSAGE = "Error Message"
KEY_NOTE = "Note"
KEY_INFORMATION = "Information"

ADVISORY_KEYS = (KEY_NOTE, KEY_INFORMATION)


class ResponseStatus(Enum):
    """Outcome of classifying a reply body."""
    OK = "ok"
    PROVIDER_ERROR = "provider_error"
    EMPTY = "empty"


@dataclass(frozen=True)
class ClassifiedResponse:
    """A reply body together with its classification."""
    status: ResponseStatus
    data: Any = None
    message: Optional[str] = None

    @property
    def is_ok(self) -> bool:
        return self.status is ResponseStatus.OK


def advisory_note(body: Dict[str, Any]) -> Optional[str]:
    """Return the advisory text of a reply, if any."""
    for key in ADVISORY_KEYS:
        if body.get(key):
            return body[key]
    return None


def classify_response(
    body: Dict[str, Any],
    data_key: Optional[str] = None,
    default_message: str = "No data returned"
) -> ClassifiedResponse:
    """Classify a decoded reply body.

    Args:
        body: Decoded JSON reply
        data_key: Key that holds the requested data, or None when the
            caller only needs the error check
        default_message: Message used for an empty reply without advisory

    Returns:
        ClassifiedResponse with status OK (data set to ``body[data_key]``,
        or the whole body when no key was requested), PROVIDER_ERROR
        (message from the provider) or EMPTY (advisory note or default
        message)
    """
    if body.get(KEY_ERROR_MESSAGE):
        return ClassifiedResponse(ResponseStatus.PROVIDER_ERROR, message=body[KEY_ERROR_MESSAGE])

    if data_key is None:
        return ClassifiedResponse(ResponseStatus.OK, data=body)

    data = body.get(data_key)
    if data is None:
        return ClassifiedResponse(ResponseStatus.EMPTY, message=advisory_note(body) or default_message)

    return ClassifiedResponse(ResponseStatus.OK, data=data)


def ensure_data_exists(
    body: Dict[str, Any],
    data_key: Optional[str] = None,
    error_class: Type[NoDataError] = NoDataError,
    default_message: str = "No data returned"
) -> Any:
    """Classify a reply and return its data or raise a typed error.

    Args:
        body: Decoded JSON reply
        data_key: Key that holds the requested data
        error_class: NoDataError subclass raised for empty replies
        default_message: Message used for an empty reply without advisory

    Returns:
        The requested data

    Raises:
        ProviderError: If the reply carries an explicit error message
        NoDataError: If the data key is missing (as ``error_class``)
    """
    classified = classify_response(body, data_key, default_message)

    if classified.status is ResponseStatus.PROVIDER_ERROR:
        logger.error(f"AlphaVantage: API Error - {classified.message}")
        raise ProviderError(classified.message, data_source='alpha_vantage')

    if classified.status is ResponseStatus.EMPTY:
        logger.warning(f"AlphaVantage: {default_message} - {classified.message}")
        raise error_class(
            f"API error: {classified.message}",
            note=advisory_note(body),
            data_source='alpha_vantage'
        )

    return classified.data
