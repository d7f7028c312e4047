"""Domain models for bm_curve — pure dataclasses, no business logic."""

from dataclasses import dataclass


@dataclass(frozen=True)
class CurveParams:
    """ICBS curve parameters. Every deployed pool uses F=1, beta=1/2."""

    lambda_scale: float = 1.0
    f: int = 1
    beta_num: int = 1
    beta_den: int = 2

    @property
    def beta(self) -> float:
        return self.beta_num / self.beta_den

    @property
    def f_over_beta(self) -> float:
        return (self.f * self.beta_den) / self.beta_num


DEFAULT_PARAMS = CurveParams()


@dataclass
class PriceQuote:
    price_long: float
    price_short: float
    market_prediction: float
    reserve_long: float
    reserve_short: float
