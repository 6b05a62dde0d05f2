import math
from typing import Callable

from skyplan.types import Instant

_GOLDEN = (math.sqrt(5.0) - 1.0) / 2.0


def bisect_crossing(
    fn: Callable[[Instant], float],
    start: Instant,
    end: Instant,
    start_value: float | None = None,
    tolerance_s: float = 1.0,
) -> Instant:
    """Narrow a sign change of ``fn`` bracketed by [start, end]."""
    if start_value is None:
        start_value = fn(start)
    low, high = start, end
    low_negative = start_value < 0.0
    while (high.utc - low.utc).total_seconds() > tolerance_s:
        mid = low.midpoint(high)
        if (fn(mid) < 0.0) == low_negative:
            low = mid
        else:
            high = mid
    return low.midpoint(high)


def golden_minimum(
    fn: Callable[[Instant], float],
    start: Instant,
    end: Instant,
    tolerance_s: float = 30.0,
) -> Instant:
    """Locate the minimum of a unimodal ``fn`` on [start, end]."""
    a, b = start, end
    span = a.days_until(b)
    c = a.add_days(span * (1.0 - _GOLDEN))
    d = a.add_days(span * _GOLDEN)
    fc, fd = fn(c), fn(d)
    while (b.utc - a.utc).total_seconds() > tolerance_s:
        if fc < fd:
            b, d, fd = d, c, fc
            c = a.add_days(a.days_until(b) * (1.0 - _GOLDEN))
            fc = fn(c)
        else:
            a, c, fc = c, d, fd
            d = a.add_days(a.days_until(b) * _GOLDEN)
            fd = fn(d)
    return a.midpoint(b)
