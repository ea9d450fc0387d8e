"""PriceAggregator: Consensus price with IQR outlier rejection.

Algorithm:
    1. Empty input short-circuits to the target price with zero deviation
    2. With 4 or more observations, drop prices outside
       [Q1 - 1.5 * IQR, Q3 + 1.5 * IQR]
    3. Combine the remaining observations with a weighted average
       (uniform weights unless a weight function is supplied)
    4. Report the absolute percentage deviation from the target peg

.. code-block:: python

    >>> aggregator = PriceAggregator()
    >>> obs = [PriceObservation(p, "a") for p in (1.0, 1.0, 1.001, 0.999, 5.0)]
    >>> result = aggregator.aggregate(obs, target_price=1.0)
    >>> round(result.price, 6)
    1.0
    >>> [o.price for o in result.dropped]
    [5.0]
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Callable

# Quartiles are degenerate below this many observations.
MIN_OBSERVATIONS_FOR_OUTLIERS = 4

IQR_MULTIPLIER = 1.5


@dataclass(frozen=True)
class PriceObservation:
    """A single price reading from one upstream source.

    :ivar price: Reported price in the peg currency.
    :ivar source: Identifier of the reporting source.
    :ivar timestamp: Unix timestamp when the price was captured.
    :ivar symbol: Asset symbol the price refers to, when known.
    :ivar liquidity: Liquidity in USD reported alongside the price.
    :ivar volume_24h: 24h traded volume in USD reported alongside the price.
    """

    price: float
    source: str
    timestamp: float = field(default_factory=time.time)
    symbol: str = ""
    liquidity: float | None = None
    volume_24h: float | None = None


@dataclass(frozen=True)
class AggregatedPrice:
    """Result of aggregating a set of observations.

    :ivar price: Consensus price.
    :ivar deviation: Absolute percentage deviation from the target price.
    :ivar sources: Every observation that was supplied, outliers included.
    :ivar timestamp: Unix timestamp when the aggregate was produced.
    :ivar weighted_average: Weighted average of the retained observations.
    :ivar used: Observations that survived outlier rejection.
    :ivar dropped: Observations rejected as outliers.
    """

    price: float
    deviation: float
    sources: list[PriceObservation]
    timestamp: float
    weighted_average: float
    used: list[PriceObservation] = field(default_factory=list)
    dropped: list[PriceObservation] = field(default_factory=list)


def calculate_deviation(current: float, target: float) -> float:
    """Absolute percentage difference between ``current`` and ``target``."""
    return abs((current - target) / target * 100)


def weighted_average(prices: list[tuple[float, float]]) -> float:
    """Weighted mean of ``(price, weight)`` pairs.

    Returns 0 for no input and the first price when all weights are zero.
    """
    if not prices:
        return 0.0
    total_weight = sum(weight for _, weight in prices)
    if total_weight == 0:
        return prices[0][0]
    return sum(price * weight for price, weight in prices) / total_weight


def iqr_bounds(values: list[float]) -> tuple[float, float]:
    """Inclusive acceptance interval of the interquartile-range rule.

    Quartiles are taken as the sorted values at index ``floor(n * 0.25)``
    and ``floor(n * 0.75)``.
    """
    ordered = sorted(values)
    q1 = ordered[int(len(ordered) * 0.25)]
    q3 = ordered[int(len(ordered) * 0.75)]
    iqr = q3 - q1
    return q1 - IQR_MULTIPLIER * iqr, q3 + IQR_MULTIPLIER * iqr


def remove_outliers(values: list[float]) -> list[float]:
    """Filter ``values`` with the IQR rule, preserving input order."""
    if len(values) < MIN_OBSERVATIONS_FOR_OUTLIERS:
        return list(values)
    lower, upper = iqr_bounds(values)
    return [v for v in values if lower <= v <= upper]


def uniform_weight(observation: PriceObservation) -> float:
    """Default weight function: every source counts the same."""
    return 1.0


class PriceAggregator:
    """Reduces raw observations to one consensus price.

    :ivar weight_fn: Callable giving the weight of each retained observation.
    """

    def __init__(
        self,
        weight_fn: Callable[[PriceObservation], float] | None = None,
    ) -> None:
        """Initialize the aggregator.

        :param weight_fn: Per-observation weight, uniform when omitted.
        """
        self.weight_fn = weight_fn or uniform_weight

    def aggregate(
        self,
        observations: list[PriceObservation],
        target_price: float = 1.0,
    ) -> AggregatedPrice:
        """Aggregate observations into a consensus price.

        :param observations: Raw observations, possibly empty.
        :param target_price: Peg value used for the deviation.
        :returns: AggregatedPrice with consensus price and deviation.
        :raises ValueError: If target_price is not positive.
        """
        if target_price <= 0:
            raise ValueError("target_price must be positive")

        now = time.time()
        if not observations:
            return AggregatedPrice(
                price=target_price,
                deviation=0.0,
                sources=[],
                timestamp=now,
                weighted_average=target_price,
            )

        if len(observations) < MIN_OBSERVATIONS_FOR_OUTLIERS:
            used = list(observations)
            dropped: list[PriceObservation] = []
        else:
            lower, upper = iqr_bounds([o.price for o in observations])
            used = [o for o in observations if lower <= o.price <= upper]
            dropped = [o for o in observations if not lower <= o.price <= upper]

        average = weighted_average([(o.price, self.weight_fn(o)) for o in used])

        return AggregatedPrice(
            price=average,
            deviation=calculate_deviation(average, target_price),
            sources=list(observations),
            timestamp=now,
            weighted_average=average,
            used=used,
            dropped=dropped,
        )
