"""Trade size estimation by inverting the bonding curve.

There is no closed-form inverse for the general curve, so buys use bisection
on the token amount. Cost of a candidate amount m is approximated with the
average of the marginal prices before and after the trade:

    cost(m) = (p(s) + p(s + m)) / 2 · m

Sells use the same average-price approximation directly.
"""

import logging
import math

from src.bm_common.enums import TokenSide
from src.bm_common.errors import InputValidationError
from src.bm_curve.domain.bonding_curve import calculate_price
from src.bm_curve.domain.models import DEFAULT_PARAMS, CurveParams

logger = logging.getLogger(__name__)

UPPER_BOUND_MULTIPLIER = 100
TOLERANCE_USDC = 0.01  # 1 cent
MAX_ITERATIONS = 64


def _price_at(
    own_supply: float, other_supply: float, side: TokenSide, params: CurveParams
) -> float:
    if side == TokenSide.LONG:
        return calculate_price(own_supply, other_supply, side, params)
    return calculate_price(other_supply, own_supply, side, params)


def _check_supplies(current_supply: float, other_supply: float) -> None:
    if not (math.isfinite(current_supply) and math.isfinite(other_supply)):
        raise InputValidationError("supplies must be finite")
    if current_supply < 0 or other_supply < 0:
        raise InputValidationError("supplies must be >= 0")


def _buy_cost(
    current_supply: float,
    other_supply: float,
    amount: float,
    side: TokenSide,
    params: CurveParams,
) -> float:
    price_before = _price_at(current_supply, other_supply, side, params)
    price_after = _price_at(current_supply + amount, other_supply, side, params)
    return (price_before + price_after) / 2 * amount


def estimate_tokens_out(
    current_supply: float,
    other_supply: float,
    usdc_in: float,
    side: TokenSide,
    params: CurveParams = DEFAULT_PARAMS,
) -> float:
    """Tokens received for spending ``usdc_in`` on ``side``.

    Bisection over [0, usdc_in × UPPER_BOUND_MULTIPLIER]. When the upper bound
    is still too cheap (tiny own supply facing a large other side) the bracket
    is doubled, sharing the MAX_ITERATIONS budget. Returns the midpoint once
    |cost − usdc_in| < TOLERANCE_USDC, otherwise the largest affordable amount
    found. Never negative.
    """
    if not math.isfinite(usdc_in) or usdc_in <= 0:
        raise InputValidationError(f"usdc_in must be finite and > 0, got {usdc_in}")
    _check_supplies(current_supply, other_supply)

    low = 0.0
    high = usdc_in * UPPER_BOUND_MULTIPLIER
    iterations = 0

    while (
        iterations < MAX_ITERATIONS
        and _buy_cost(current_supply, other_supply, high, side, params) < usdc_in
    ):
        low = high
        high *= 2
        iterations += 1

    while iterations < MAX_ITERATIONS:
        mid = (low + high) / 2
        cost = _buy_cost(current_supply, other_supply, mid, side, params)
        if abs(cost - usdc_in) < TOLERANCE_USDC:
            return mid
        if cost < usdc_in:
            low = mid
        else:
            high = mid
        iterations += 1

    logger.debug(
        "tokens_out did not converge in %d iterations: usdc_in=%s side=%s result=%s",
        MAX_ITERATIONS, usdc_in, side.value, low,
    )
    return max(low, 0.0)


def estimate_usdc_out(
    current_supply: float,
    other_supply: float,
    tokens_in: float,
    side: TokenSide,
    params: CurveParams = DEFAULT_PARAMS,
) -> float:
    """USDC received for selling ``tokens_in``.

    Overselling clamps supply at zero and pays only for the tokens held.
    """
    if not math.isfinite(tokens_in) or tokens_in <= 0:
        raise InputValidationError(f"tokens_in must be finite and > 0, got {tokens_in}")
    _check_supplies(current_supply, other_supply)

    new_supply = max(0.0, current_supply - tokens_in)
    # Only tokens that exist are paid out
    sold = current_supply - new_supply
    price_before = _price_at(current_supply, other_supply, side, params)
    price_after = _price_at(new_supply, other_supply, side, params)
    return max((price_before + price_after) / 2 * sold, 0.0)
