"""Fixed-point and unit conversion primitives.

Ledger-facing and conservation-checked quantities are int (micro-USDC, atomic
token units, millionths, Q32.32, X96). Float is used only for curve price
estimation. Conversions into ledger formats truncate, never round.

Units:
  - USDC amounts: micro-USDC int (1 USDC = 1_000_000)
  - Token supplies on the ledger: display units (float)
  - Token supplies in the database: atomic units int (6 decimals)
  - Sqrt prices: sqrt(price) * 2^96
"""

from decimal import ROUND_FLOOR, Decimal, localcontext

from src.bm_common.errors import InputValidationError

Q96 = 1 << 96
Q32 = 1 << 32
MICRO = 1_000_000
MILLIONTHS_ONE = 1_000_000

MAX_DISPLAY_SUPPLY = 1_000_000_000_000


def isqrt(n: int) -> int:
    """Floor integer square root via Newton's method."""
    if n < 0:
        raise InputValidationError(f"isqrt of negative value {n}")
    if n == 0:
        return 0
    x = n
    y = (x + 1) >> 1
    while y < x:
        x = y
        y = (x + n // x) >> 1
    return x


def mul_div(a: int, b: int, d: int) -> int:
    """floor(a * b / d) on non-negative ints."""
    if d == 0:
        raise InputValidationError("division by zero in mul_div")
    if a < 0 or b < 0 or d < 0:
        raise InputValidationError(f"mul_div expects non-negative operands, got {a}, {b}, {d}")
    return (a * b) // d


# ---------------------------------------------------------------------------
# Sqrt price X96
# ---------------------------------------------------------------------------

def price_to_sqrt_price_x96(price: float) -> int:
    """USDC-per-token price -> floor(sqrt(price) * 2^96)."""
    if price < 0:
        raise InputValidationError(f"price must be >= 0, got {price}")
    with localcontext() as ctx:
        ctx.prec = 80  # 2^160 needs 49 digits
        return int(Decimal(price).sqrt() * Q96)


def sqrt_price_x96_to_price(sqrt_price_x96: int) -> float:
    """Inverse of price_to_sqrt_price_x96: (sqrt_x96 / 2^96)^2."""
    if sqrt_price_x96 < 0:
        raise InputValidationError(f"sqrt price must be >= 0, got {sqrt_price_x96}")
    with localcontext() as ctx:
        ctx.prec = 80
        ratio = Decimal(sqrt_price_x96) / Decimal(Q96)
        return float(ratio * ratio)


def is_valid_sqrt_price(sqrt_price_x96: int) -> bool:
    return 0 < sqrt_price_x96 < (1 << 160)


# ---------------------------------------------------------------------------
# Unit conversions
# ---------------------------------------------------------------------------

def display_to_atomic(display: float) -> int:
    """Display tokens -> atomic units (rounded to absorb float noise)."""
    if display < 0:
        raise InputValidationError(f"display amount must be >= 0, got {display}")
    return round(display * MICRO)


def atomic_to_display(atomic: int) -> float:
    return atomic / MICRO


def usdc_to_micro(usdc: float) -> int:
    """1.5 -> 1_500_000 (rounded)."""
    return round(usdc * MICRO)


def micro_to_usdc(micro: int) -> float:
    return micro / MICRO


def as_display(value: float) -> float:
    """Validate a display-unit supply read from the ledger."""
    if value < 0 or value != value:  # NaN check
        raise InputValidationError(f"invalid display unit value: {value}")
    if value > MAX_DISPLAY_SUPPLY:
        raise InputValidationError(f"display unit overflow: {value}")
    return value


def as_micro_usdc(value: int) -> int:
    if not isinstance(value, int) or value < 0:
        raise InputValidationError(f"micro-USDC must be a non-negative int, got {value!r}")
    return value


def micro_to_display(micro: int) -> str:
    """1_234_567 -> '$1.234567', -500_000 -> '-$0.500000'."""
    if micro < 0:
        abs_micro = -micro
        return f"-${abs_micro // MICRO:,}.{abs_micro % MICRO:06d}"
    return f"${micro // MICRO:,}.{micro % MICRO:06d}"


# ---------------------------------------------------------------------------
# Ground-truth score -> ledger fixed point
# ---------------------------------------------------------------------------

def _validate_score(score: float) -> Decimal:
    if not (0.0 <= score <= 1.0):
        raise InputValidationError(f"score must be in [0, 1], got {score}")
    # str() gives the shortest repr, so 0.57 truncates to 570000, not 569999
    return Decimal(str(score))


def score_to_millionths(score: float) -> int:
    """[0, 1] -> [0, 1_000_000], exact truncation."""
    scaled = _validate_score(score) * MILLIONTHS_ONE
    return int(scaled.to_integral_value(rounding=ROUND_FLOOR))


def score_to_q32(score: float) -> int:
    """[0, 1] -> Q32.32 (score * 2^32), exact truncation."""
    scaled = _validate_score(score) * Q32
    return int(scaled.to_integral_value(rounding=ROUND_FLOOR))


def millionths_to_score(millionths: int) -> float:
    if not (0 <= millionths <= MILLIONTHS_ONE):
        raise InputValidationError(
            f"score millionths must be in [0, {MILLIONTHS_ONE}], got {millionths}"
        )
    return millionths / MILLIONTHS_ONE
