"""
Penalty calculation for late or prohibited gift acceptance.

The fine is the declared gift value multiplied by a factor that grows with
the number of times the public servant has breached the rules:

  - 1st breach: 2x the gift value
  - 2nd breach: 5x the gift value
  - 3rd and every later breach: 10x the gift value

Inputs arrive straight from web forms, so both arguments are coerced
instead of validated. A bad value becomes 0, a bad breach number becomes 1.
"""

import math
from dataclasses import dataclass

from bgts import config


@dataclass(frozen=True)
class PenaltyResult:
    value: float
    breach_number: int
    multiplier: int
    fine: float
    formatted: str


# Indexed by breach occurrence. The last entry applies to every later breach.
MULTIPLIERS: tuple[int, ...] = (2, 5, 10)


def coerce_value(value) -> float:
    """Turn a form value into a non-negative finite amount (0 on failure)."""
    if isinstance(value, bool) or value is None:
        return 0.0
    if isinstance(value, str):
        value = value.strip().replace(",", "")
    try:
        amount = float(value)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(amount) or amount < 0:
        return 0.0
    return amount


def coerce_breach_number(breach_number) -> int:
    """Turn a form value into a breach count of at least 1."""
    if isinstance(breach_number, bool) or breach_number is None:
        return 1
    if isinstance(breach_number, str):
        breach_number = breach_number.strip()
    try:
        count = int(breach_number)
    except (TypeError, ValueError, OverflowError):
        try:
            number = float(breach_number)
        except (TypeError, ValueError):
            return 1
        if not math.isfinite(number):
            return 1
        count = int(number)
    return max(count, 1)


def multiplier_for(breach_number: int) -> int:
    index = min(max(breach_number, 1), len(MULTIPLIERS)) - 1
    return MULTIPLIERS[index]


def format_amount(amount: float, symbol: str | None = None) -> str:
    """Format a fine as '<symbol> 1,234' (or '1,234.50' for fractions)."""
    symbol = config.CURRENCY_SYMBOL if symbol is None else symbol
    if float(amount).is_integer():
        body = f"{amount:,.0f}"
    else:
        body = f"{amount:,.2f}"
    return f"{symbol} {body}" if symbol else body


def calculate_penalty(value, breach_number=1) -> PenaltyResult:
    amount = coerce_value(value)
    count = coerce_breach_number(breach_number)
    multiplier = multiplier_for(count)
    fine = round(amount * multiplier, 2)
    if not math.isfinite(fine):
        # Too large to charge; counts as a bad value like any other.
        amount = 0.0
        fine = 0.0

    return PenaltyResult(
        value=amount,
        breach_number=count,
        multiplier=multiplier,
        fine=fine,
        formatted=format_amount(fine),
    )
