# gplay/preprocessing/quantile_normal.py
"""
Serve-time replica of a fitted QuantileTransformer(output_distribution="normal").

Each numeric value is mapped to the empirical uniform CDF by linear interpolation
between stored quantile breakpoints, clamped away from 0/1 and pushed through the
inverse normal CDF.
"""

import math
from typing import Sequence

EPS = 1e-12

# Rational approximation of the inverse normal CDF (Acklam),
# coefficients as used when the model was validated.
_A = (
    -39.6968302866538,
    220.946098424521,
    -275.928510446969,
    138.357751867269,
    -30.6647980661472,
    2.50662827745924,
)
_B = (
    -54.4760987982241,
    161.585836858041,
    -155.698979859887,
    66.8013118877197,
    -13.2806815528857,
)
_C = (
    -7.78489400243029e-03,
    -0.322396458041136,
    -2.40075827716184,
    -2.54973253934373,
    4.37466414146497,
    2.93816398269878,
)
_D = (
    7.78469570904146e-03,
    0.32246712907004,
    2.445134137143,
    3.75440866190742,
)

P_LOW = 0.02425
P_HIGH = 1 - P_LOW


def _tail(q: float) -> float:
    c1, c2, c3, c4, c5, c6 = _C
    d1, d2, d3, d4 = _D
    return (((((c1 * q + c2) * q + c3) * q + c4) * q + c5) * q + c6) / \
        ((((d1 * q + d2) * q + d3) * q + d4) * q + 1)


def probit(p: float) -> float:
    """
    Inverse standard normal CDF for p in (0, 1).
    Callers clamp p with clamp_probability() first; p == 0 or 1 is outside the contract.
    """
    if p < P_LOW:
        q = math.sqrt(-2 * math.log(p))
        return _tail(q)
    if P_HIGH < p:
        q = math.sqrt(-2 * math.log(1 - p))
        return -_tail(q)
    a1, a2, a3, a4, a5, a6 = _A
    b1, b2, b3, b4, b5 = _B
    q = p - 0.5
    r = q * q
    return (((((a1 * r + a2) * r + a3) * r + a4) * r + a5) * r + a6) * q / \
        (((((b1 * r + b2) * r + b3) * r + b4) * r + b5) * r + 1)


def cdf_from_quantiles(v: float, q: Sequence[float]) -> float:
    """
    Uniform CDF of v given n non-decreasing breakpoints spread evenly over [0, 1].
    Returns exactly 0.0 at or below q[0] and exactly 1.0 at or above q[-1].
    """
    n = len(q)
    if v <= q[0]:
        return 0.0
    if v >= q[n - 1]:
        return 1.0

    # q[lo] <= v < q[hi]
    lo, hi = 0, n - 1
    while hi - lo > 1:
        mid = (lo + hi) >> 1
        if v < q[mid]:
            hi = mid
        else:
            lo = mid

    width = q[hi] - q[lo]
    if math.isnan(width):
        return math.nan
    t = (v - q[lo]) / max(EPS, width)
    p_lo = lo / (n - 1)
    p_hi = hi / (n - 1)
    return p_lo + (p_hi - p_lo) * t


def clamp_probability(p: float) -> float:
    # NaN passes through so the caller's finiteness check still sees it
    if math.isnan(p):
        return p
    return min(1 - EPS, max(EPS, p))


def quantile_normal(v: float, q: Sequence[float]) -> float:
    return probit(clamp_probability(cdf_from_quantiles(v, q)))
