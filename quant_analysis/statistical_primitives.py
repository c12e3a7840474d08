"""
Statistics Primitives

Mean, population standard deviation and ordinary least squares regression,
plus the return transforms shared by the indicator library and the
predictive models.

Every function is total over finite numeric input: empty sequences and
degenerate fits return documented neutral values instead of raising or
producing NaN.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Sequence, Union

import numpy as np

logger = logging.getLogger(__name__)

ArrayLike = Union[Sequence[float], np.ndarray]


@dataclass(frozen=True)
class RegressionFit:
    """Least-squares line ``y = slope * x + intercept`` with its R²."""
    slope: float
    intercept: float
    r2: float

    def predict(self, x: float) -> float:
        return self.slope * x + self.intercept


def mean(values: ArrayLike) -> float:
    """Arithmetic mean; 0.0 for an empty sequence."""
    arr = np.asarray(values, dtype=float)
    if arr.size == 0:
        return 0.0
    return float(arr.mean())


def standard_deviation(values: ArrayLike) -> float:
    """Population standard deviation (divides by n); 0.0 for an empty sequence."""
    arr = np.asarray(values, dtype=float)
    if arr.size == 0:
        return 0.0
    return float(arr.std(ddof=0))


def linear_regression(x: ArrayLike, y: ArrayLike) -> RegressionFit:
    """
    Ordinary least squares fit of y on x.

    Parameters
    ----------
    x, y : array-like
        Paired observations of equal length

    Returns
    -------
    RegressionFit
        slope, intercept and coefficient of determination clamped to >= 0.
        When all x are equal the slope is 0, the intercept is mean(y) and
        r2 is 0.
    """
    x_arr = np.asarray(x, dtype=float)
    y_arr = np.asarray(y, dtype=float)
    n = x_arr.size
    if n == 0:
        return RegressionFit(slope=0.0, intercept=0.0, r2=0.0)
    if y_arr.size != n:
        raise ValueError(f"x and y must have equal length, got {n} and {y_arr.size}")

    sum_x = x_arr.sum()
    sum_y = y_arr.sum()
    sum_xy = (x_arr * y_arr).sum()
    sum_x2 = (x_arr * x_arr).sum()

    denominator = n * sum_x2 - sum_x * sum_x
    if denominator == 0:
        return RegressionFit(slope=0.0, intercept=float(sum_y / n), r2=0.0)

    slope = (n * sum_xy - sum_x * sum_y) / denominator
    intercept = (sum_y - slope * sum_x) / n

    y_mean = sum_y / n
    ss_total = ((y_arr - y_mean) ** 2).sum()
    ss_residual = ((y_arr - (slope * x_arr + intercept)) ** 2).sum()
    r2 = 0.0 if ss_total == 0 else 1.0 - ss_residual / ss_total

    return RegressionFit(slope=float(slope), intercept=float(intercept), r2=float(max(0.0, r2)))


def log_returns(prices: ArrayLike) -> np.ndarray:
    """
    Natural log returns ``ln(p[t] / p[t-1])``.

    Pairs involving a non-positive price have no defined log return and are
    skipped.
    """
    arr = np.asarray(prices, dtype=float)
    if arr.size < 2:
        return np.empty(0)
    prev, curr = arr[:-1], arr[1:]
    valid = (prev > 0) & (curr > 0)
    if not valid.all():
        logger.debug(f"Skipping {int((~valid).sum())} non-positive price pairs in log returns")
    return np.log(curr[valid] / prev[valid])


def percent_changes(prices: ArrayLike) -> np.ndarray:
    """Percentage change between consecutive prices; 0 where the previous price is 0."""
    arr = np.asarray(prices, dtype=float)
    if arr.size < 2:
        return np.empty(0)
    prev, curr = arr[:-1], arr[1:]
    safe_prev = np.where(prev == 0, 1.0, prev)
    return np.where(prev == 0, 0.0, (curr - prev) / safe_prev * 100.0)
