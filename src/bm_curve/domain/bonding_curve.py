"""Inversely coupled two-sided bonding curve.

Marginal price for side X with supplies (s_L, s_S):

    p_X = λ · F · s_X^(F/β − 1) · (s_L^(F/β) + s_S^(F/β))^(β − 1)

With the fixed protocol parameters F=1, β=1/2 this is p_X = λ · s_X / ‖s‖₂.
Supplies are display units; prices are USDC per token. Float is fine here:
these numbers feed quotes, never the ledger.
"""

from src.bm_common.enums import TokenSide
from src.bm_common.errors import InputValidationError
from src.bm_common.fixed_point import Q96, isqrt, price_to_sqrt_price_x96
from src.bm_curve.domain.models import DEFAULT_PARAMS, CurveParams, PriceQuote

NEUTRAL_PREDICTION = 0.5


def _check_supplies(s_long: float, s_short: float) -> None:
    if s_long < 0 or s_short < 0:
        raise InputValidationError(
            f"supplies must be >= 0, got long={s_long} short={s_short}"
        )


def calculate_price(
    s_long: float,
    s_short: float,
    side: TokenSide,
    params: CurveParams = DEFAULT_PARAMS,
) -> float:
    """Marginal price of one ``side`` token. Zero own supply -> λ (floor price)."""
    _check_supplies(s_long, s_short)
    s = s_long if side == TokenSide.LONG else s_short
    if s == 0:
        return params.lambda_scale

    exponent = params.f_over_beta
    sum_pow = s_long**exponent + s_short**exponent
    price = (
        params.lambda_scale
        * params.f
        * s ** (exponent - 1)
        * sum_pow ** (params.beta - 1)
    )
    return max(price, 0.0)


def calculate_sqrt_price_x96(
    s_long: float,
    s_short: float,
    side: TokenSide,
    sqrt_lambda_x96: int = Q96,
    params: CurveParams = DEFAULT_PARAMS,
) -> int:
    """sqrt(price) * 2^96, with λ applied separately in X96 form."""
    unit = CurveParams(
        lambda_scale=1.0, f=params.f, beta_num=params.beta_num, beta_den=params.beta_den
    )
    sqrt_price_x96 = price_to_sqrt_price_x96(calculate_price(s_long, s_short, side, unit))
    return (sqrt_price_x96 * sqrt_lambda_x96) // Q96


def sqrt_lambda_x96(lambda_scale: float) -> int:
    """λ -> sqrt(λ) * 2^96 (integer sqrt of λ * 2^192)."""
    if lambda_scale < 0:
        raise InputValidationError(f"lambda must be >= 0, got {lambda_scale}")
    return isqrt(int(lambda_scale * (1 << 192)))


def calculate_virtual_reserves(
    s_long: float,
    s_short: float,
    lambda_long: float = 1.0,
    lambda_short: float = 1.0,
    params: CurveParams = DEFAULT_PARAMS,
) -> tuple[float, float]:
    """R_side = s_side × p_side."""
    p_long = calculate_price(
        s_long, s_short, TokenSide.LONG, _with_lambda(params, lambda_long)
    )
    p_short = calculate_price(
        s_long, s_short, TokenSide.SHORT, _with_lambda(params, lambda_short)
    )
    return s_long * p_long, s_short * p_short


def calculate_market_prediction(
    s_long: float,
    s_short: float,
    lambda_long: float = 1.0,
    lambda_short: float = 1.0,
    params: CurveParams = DEFAULT_PARAMS,
) -> float:
    """q = R_L / (R_L + R_S); neutral 0.5 when both reserves are zero."""
    r_long, r_short = calculate_virtual_reserves(
        s_long, s_short, lambda_long, lambda_short, params
    )
    total = r_long + r_short
    if total == 0:
        return NEUTRAL_PREDICTION
    return min(max(r_long / total, 0.0), 1.0)


def quote(s_long: float, s_short: float, params: CurveParams = DEFAULT_PARAMS) -> PriceQuote:
    """Both prices, reserves and q in one pass."""
    r_long, r_short = calculate_virtual_reserves(
        s_long, s_short, params.lambda_scale, params.lambda_scale, params
    )
    total = r_long + r_short
    return PriceQuote(
        price_long=calculate_price(s_long, s_short, TokenSide.LONG, params),
        price_short=calculate_price(s_long, s_short, TokenSide.SHORT, params),
        market_prediction=r_long / total if total > 0 else NEUTRAL_PREDICTION,
        reserve_long=r_long,
        reserve_short=r_short,
    )


def _with_lambda(params: CurveParams, lambda_scale: float) -> CurveParams:
    if lambda_scale == params.lambda_scale:
        return params
    return CurveParams(
        lambda_scale=lambda_scale,
        f=params.f,
        beta_num=params.beta_num,
        beta_den=params.beta_den,
    )
