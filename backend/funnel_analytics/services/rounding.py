from decimal import ROUND_HALF_UP, Context, Decimal
import math


def round_half_up(value: float, places: int = 1) -> float:
    # Through str() so 40.00000000000001 and 2.675 round the way people expect.
    if isinstance(value, float) and not math.isfinite(value):
        return value
    exact = Decimal(str(value))
    quantum = Decimal(1).scaleb(-places)
    # Enough digits for every integer digit plus the kept decimals.
    context = Context(prec=max(exact.adjusted(), 0) + places + 2)
    return float(exact.quantize(quantum, rounding=ROUND_HALF_UP, context=context))


def round_money(value: float) -> float:
    return round_half_up(value, 2)


def safe_rate(value: float, base: float, places: int = 1) -> float:
    """Percentage of ``value`` over ``base``; 0 when the base is not positive."""
    if base <= 0:
        return 0.0
    return round_half_up(value / base * 100, places)
