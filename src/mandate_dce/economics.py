"""
Cost-benefit aggregation.

Scales per-100,000 results to the national population, values them either per
life saved or per QALY, and compares the benefit with the programme cost.
Cost scales with the number of people who comply with the mandate, i.e. the
population times the predicted support.
"""

import math
from dataclasses import asdict, dataclass, replace
from enum import Enum
from typing import Any, Dict, Optional, Union

from utils.logging import log_call

from .choice import ChoiceResult
from .errors import UNDEFINED, UndefinedRatio, ValidationError
from .policy import PolicyConfiguration
from .welfare import WelfareResult

PER_POPULATION = 100_000

Ratio = Union[float, UndefinedRatio]


class Valuation(str, Enum):
    VALUE_PER_LIFE = "value_per_life"
    QALY = "qaly"


@dataclass(frozen=True)
class EconomicParameters:
    """
    Population and monetary assumptions.

    Parameters
    ----------
    population_size : float
        Population the mandate applies to
    value_per_life : float
        Monetary value of a statistical life (``VALUE_PER_LIFE`` valuation)
    fixed_cost : float
        Programme cost independent of uptake
    per_capita_cost : float
        Cost per complying person
    valuation : Valuation, default=VALUE_PER_LIFE
        How lives saved are monetised
    qaly_per_life : float, default=0.0
        QALYs gained per death averted (``QALY`` valuation)
    morbidity_qaly_gain : float, default=0.0
        QALYs gained from averted non-fatal illness (``QALY`` valuation)
    value_per_qaly : float, default=0.0
        Monetary value of one QALY (``QALY`` valuation)
    vaccine_effectiveness : float, default=1.0
        Fraction of the stated lives saved that is realised, in [0, 1]
    """

    population_size: float
    value_per_life: float
    fixed_cost: float
    per_capita_cost: float
    valuation: Valuation = Valuation.VALUE_PER_LIFE
    qaly_per_life: float = 0.0
    morbidity_qaly_gain: float = 0.0
    value_per_qaly: float = 0.0
    vaccine_effectiveness: float = 1.0

    def __post_init__(self) -> None:
        try:
            object.__setattr__(self, "valuation", Valuation(self.valuation))
        except ValueError:
            raise ValidationError(f"Unknown valuation '{self.valuation}'") from None
        self.validate()

    @classmethod
    @log_call
    def from_mapping(cls, data: Dict[str, Any]) -> "EconomicParameters":
        known = {name for name in cls.__dataclass_fields__}
        unknown = set(data) - known
        if unknown:
            raise ValidationError(f"Unknown economic parameter(s): {sorted(unknown)}")
        try:
            return cls(**data)
        except TypeError as exc:
            raise ValidationError(f"Incomplete economic parameters: {exc}") from None

    @log_call
    def validate(self) -> None:
        """Raise :class:`ValidationError` for negative or non-finite inputs."""
        for name in (
            "population_size",
            "value_per_life",
            "fixed_cost",
            "per_capita_cost",
            "qaly_per_life",
            "morbidity_qaly_gain",
            "value_per_qaly",
            "vaccine_effectiveness",
        ):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ValidationError(f"{name} must be a number, got {value!r}")
            if not math.isfinite(value):
                raise ValidationError(f"{name} must be finite, got {value!r}")
            if value < 0:
                raise ValidationError(f"{name} must be non-negative, got {value!r}")
        if self.vaccine_effectiveness > 1.0:
            raise ValidationError(
                f"vaccine_effectiveness must be in [0, 1], got {self.vaccine_effectiveness!r}"
            )

    @log_call
    def with_updates(self, **changes: Any) -> "EconomicParameters":
        """Copy with some parameters replaced (validated again)."""
        return replace(self, **changes)


@dataclass(frozen=True)
class EvaluationOutput:
    """Everything computed for one policy configuration."""

    choice_probability: float
    opt_out_probability: float
    base_lives_saved: float
    wts_adjustment: float
    welfare_equivalent_lives: float
    national_lives_saved: float
    monetized_benefit: float
    total_cost: float
    net_benefit: float
    benefit_cost_ratio: Ratio
    utility_mandate: float = 0.0
    utility_opt_out: float = 0.0
    uptake_score: int = 0
    total_qaly: Optional[float] = None

    @property
    @log_call
    def has_benefit_cost_ratio(self) -> bool:
        return self.benefit_cost_ratio is not UNDEFINED

    @log_call
    def to_flat_dict(self) -> Dict[str, Any]:
        """Flat key/value form; an undefined ratio becomes ``None``."""
        flat = asdict(self)
        if self.benefit_cost_ratio is UNDEFINED:
            flat["benefit_cost_ratio"] = None
        return flat


def _require_finite(value: float, name: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
        raise ValidationError(f"{name} must be a finite number, got {value!r}")
    return float(value)


@log_call
def benefit_cost_ratio(benefit: float, cost: float) -> Ratio:
    """``benefit / cost``, or :data:`UNDEFINED` when the cost is zero."""
    if cost == 0:
        return UNDEFINED
    return benefit / cost


@log_call
def monetize(national_lives_saved: float, params: EconomicParameters) -> Dict[str, Optional[float]]:
    """Monetary benefit of ``national_lives_saved`` under the chosen valuation."""
    if params.valuation is Valuation.QALY:
        total_qaly = national_lives_saved * params.qaly_per_life + params.morbidity_qaly_gain
        return {"benefit": total_qaly * params.value_per_qaly, "total_qaly": total_qaly}
    return {"benefit": national_lives_saved * params.value_per_life, "total_qaly": None}


@log_call
def compute_outputs(
    config: PolicyConfiguration,
    choice: ChoiceResult,
    welfare: WelfareResult,
    params: EconomicParameters,
    uptake: int = 0,
) -> EvaluationOutput:
    """
    Combine support and welfare-equivalent lives into the economic outputs.

    Raises
    ------
    ValidationError
        If the probability lies outside [0, 1] or any input is non-finite.
    """
    probability = _require_finite(choice.probability, "choice probability")
    if not 0.0 <= probability <= 1.0:
        raise ValidationError(f"choice probability must be in [0, 1], got {probability!r}")
    equivalent_lives = _require_finite(welfare.equivalent_lives, "equivalent lives")
    params.validate()

    national_lives = (
        equivalent_lives * params.vaccine_effectiveness * params.population_size / PER_POPULATION
    )
    monetary = monetize(national_lives, params)
    benefit = monetary["benefit"]
    total_cost = params.fixed_cost + params.per_capita_cost * params.population_size * probability

    return EvaluationOutput(
        choice_probability=probability,
        opt_out_probability=choice.opt_out_probability,
        base_lives_saved=config.lives_saved,
        wts_adjustment=welfare.adjustment,
        welfare_equivalent_lives=equivalent_lives,
        national_lives_saved=national_lives,
        monetized_benefit=benefit,
        total_cost=total_cost,
        net_benefit=benefit - total_cost,
        benefit_cost_ratio=benefit_cost_ratio(benefit, total_cost),
        utility_mandate=choice.utility_mandate,
        utility_opt_out=choice.utility_opt_out,
        uptake_score=uptake,
        total_qaly=monetary["total_qaly"],
    )
