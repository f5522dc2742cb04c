"""Extraction of date-keyed time series into domain records."""

from datetime import date, datetime, timedelta
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, List, Mapping, Optional, TypeVar

from market_data_provider.utils.logging import get_logger

logger = get_logger(__name__)

# Roughly how far back a "compact" daily series reaches (100 data points)
COMPACT_WINDOW_DAYS = 100

RecordT = TypeVar('RecordT')


def warn_if_outside_compact_window(
    start_date: date,
    label: str,
    today: Optional[date] = None,
    window_days: int = COMPACT_WINDOW_DAYS
) -> bool:
    """Log a warning when ``start_date`` predates the compact output window.

    Returns:
        True if the warning was emitted
    """
    today = today or date.today()
    if start_date < today - timedelta(days=window_days):
        logger.warning(
            f"AlphaVantage: start_date ({start_date}) for {label} is older than {window_days} days. "
            f"'compact' output may not contain required data."
        )
        return True
    return False


def _parse_value(raw: Any) -> Optional[Decimal]:
    """Convert a raw value to a positive finite Decimal, or None."""
    if raw is None or isinstance(raw, bool):
        return None
    try:
        value = Decimal(str(raw).strip())
    except (InvalidOperation, ValueError):
        return None
    if not value.is_finite() or value <= 0:
        return None
    return value


def extract_series(
    rows: Mapping[str, Any],
    start_date: date,
    end_date: date,
    value_key: str,
    build_record: Callable[[date, Decimal], RecordT],
    label: str = "series"
) -> List[RecordT]:
    """Build records from a date-keyed mapping of provider rows.

    Rows outside ``[start_date, end_date]`` are dropped first. Rows with an
    unparseable date, or a missing, non-numeric or non-positive value, are
    logged and skipped.

    Args:
        rows: Mapping of ISO date strings to row dictionaries
        start_date: First date to keep (inclusive)
        end_date: Last date to keep (inclusive)
        value_key: Row field holding the value (e.g. "4. close")
        build_record: Called with (date, value) for each valid row
        label: Name used in log messages (pair or symbol)

    Returns:
        Records sorted by date ascending

    Raises:
        ValueError: If start_date is after end_date
    """
    if start_date > end_date:
        raise ValueError(f"start_date ({start_date}) must not be after end_date ({end_date})")

    dated = []
    for date_str, values in rows.items():
        try:
            row_date = datetime.strptime(str(date_str).strip()[:10], "%Y-%m-%d").date()
        except ValueError:
            logger.warning(f"AlphaVantage: Unparseable date for {label}: {date_str!r}")
            continue

        if row_date < start_date or row_date > end_date:
            continue

        raw = values.get(value_key) if isinstance(values, Mapping) else None
        value = _parse_value(raw)
        if value is None:
            logger.warning(f"AlphaVantage: Invalid data for {label} on {row_date}: {raw!r}")
            continue

        dated.append((row_date, build_record(row_date, value)))

    dated.sort(key=lambda item: item[0])
    return [record for _, record in dated]
