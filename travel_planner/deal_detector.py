"""
Deal detection for newly observed prices.
"""

from __future__ import annotations

import logging
from typing import Optional

from .errors import InvalidInputError
from .schema import DealAssessment, DealReason, Statistics
from .types import DEFAULT_PRICE_DROP_THRESHOLD
from .utils import round_half_up, validate_price

logger = logging.getLogger(__name__)


def percentage_drop(current_price: float, reference: Optional[float]) -> Optional[int]:
    """
    Percentage drop of current_price below reference, rounded half away from zero.

    Negative when the price rose. None without a usable reference.

    Examples:
        >>> percentage_drop(85, 100)
        15
        >>> percentage_drop(150, 100)
        -50
    """
    if reference is None or reference == 0:
        return None
    return round_half_up((reference - current_price) / reference * 100)


def assess_deal(
    current_price: Optional[float],
    stats: Optional[Statistics],
    threshold_percent: float = DEFAULT_PRICE_DROP_THRESHOLD,
) -> DealAssessment:
    """
    Classify a price against a route's current statistics.

    A price at or below the 30-day low is always a deal. Otherwise it is a
    deal when it sits at least threshold_percent below the 7-day average.

    Args:
        current_price: Newly observed best price
        stats: Statistics computed before the price was recorded
        threshold_percent: Minimum drop from the 7-day average, in percent

    Returns:
        DealAssessment

    Raises:
        InvalidInputError: If current_price or threshold_percent is negative
    """
    if current_price is None or stats is None:
        return DealAssessment(
            is_deal=False,
            reason=DealReason.INSUFFICIENT_DATA,
            percentage_drop=None,
            is_lowest_in_30_days=False,
        )

    current_price = validate_price(current_price, field="current_price")
    if threshold_percent is None or threshold_percent < 0:
        raise InvalidInputError(
            f"threshold_percent must be non-negative: {threshold_percent!r}",
            field="threshold_percent",
            value=threshold_percent,
        )

    is_lowest = stats.min_30day is not None and current_price <= stats.min_30day
    drop = percentage_drop(current_price, stats.avg_7day)
    significant = drop is not None and drop >= threshold_percent

    if is_lowest:
        reason = DealReason.THIRTY_DAY_LOW
    elif significant:
        reason = DealReason.SIGNIFICANT_DROP
    else:
        reason = DealReason.NONE

    assessment = DealAssessment(
        is_deal=is_lowest or significant,
        reason=reason,
        percentage_drop=drop,
        is_lowest_in_30_days=is_lowest,
        reference_price=stats.avg_7day,
    )
    logger.debug(f"Deal assessment for {current_price}: {assessment.reason.value}")
    return assessment


__all__ = [
    "assess_deal",
    "percentage_drop",
]
