"""
Probabilistic sensitivity analysis.

Draws uncertain economic parameters from clamped normal distributions,
re-evaluates the configuration for each draw and reports the share of draws
with a positive net monetary benefit. Repeating the run over several
valuations of a life (or QALY) traces a cost-effectiveness acceptability
curve.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, Mapping, Optional, Tuple

import numpy as np
import pandas as pd

from utils.logging import log_call

from .economics import EconomicParameters, Valuation
from .errors import ValidationError
from .evaluation import MandateCalculator
from .policy import PolicyConfiguration

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ParameterDistribution:
    """Normal distribution truncated by clamping to ``[lower, upper]``."""

    mean: float
    sd: float
    lower: float
    upper: float

    def __post_init__(self) -> None:
        if self.sd < 0:
            raise ValidationError(f"sd must be non-negative, got {self.sd!r}")
        if self.lower > self.upper:
            raise ValidationError("lower bound exceeds upper bound")

    @log_call
    def sample(self, rng: np.random.Generator) -> float:
        return float(np.clip(rng.normal(self.mean, self.sd), self.lower, self.upper))


@dataclass(frozen=True)
class SensitivitySettings:
    """
    Monte Carlo settings.

    ``distributions`` maps :class:`EconomicParameters` field names to the
    distribution drawn for that parameter; unlisted parameters stay fixed.
    """

    draws: int = 1000
    seed: Optional[int] = None
    interval: float = 0.95
    distributions: Mapping[str, ParameterDistribution] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.draws <= 0:
            raise ValidationError(f"draws must be positive, got {self.draws!r}")
        if not 0.0 < self.interval < 1.0:
            raise ValidationError(f"interval must be in (0, 1), got {self.interval!r}")
        unknown = set(self.distributions) - set(EconomicParameters.__dataclass_fields__)
        if unknown:
            raise ValidationError(f"Cannot vary unknown parameter(s): {sorted(unknown)}")

    @classmethod
    @log_call
    def from_mapping(
        cls, data: Mapping[str, Any], valuation: Valuation = Valuation.VALUE_PER_LIFE
    ) -> "SensitivitySettings":
        """
        Build from the ``sensitivity`` config group.

        Only the monetary valuation that matches ``valuation`` is varied.
        """
        skip = "value_per_qaly" if Valuation(valuation) is Valuation.VALUE_PER_LIFE else "value_per_life"
        distributions = {
            name: ParameterDistribution(**params)
            for name, params in data.items()
            if isinstance(params, Mapping) and name != skip
        }
        return cls(
            draws=int(data.get("draws", 1000)),
            seed=data.get("seed"),
            interval=float(data.get("interval", 0.95)),
            distributions=distributions,
        )


@dataclass
class MonteCarloResult:
    probability_positive_nmb: float
    draws_requested: int
    draws_completed: int
    partial: bool
    net_benefits: np.ndarray
    mean_net_benefit: float
    interval: Tuple[float, float]


@log_call
def sample_parameters(
    base: EconomicParameters,
    distributions: Mapping[str, ParameterDistribution],
    rng: np.random.Generator,
) -> EconomicParameters:
    """One draw of the uncertain parameters applied on top of ``base``."""
    draws: Dict[str, float] = {
        name: distribution.sample(rng) for name, distribution in sorted(distributions.items())
    }
    return base.with_updates(**draws)


@log_call
def run_monte_carlo(
    calculator: MandateCalculator,
    config: PolicyConfiguration,
    settings: SensitivitySettings,
    base_params: Optional[EconomicParameters] = None,
    should_stop: Optional[Callable[[], bool]] = None,
) -> MonteCarloResult:
    """
    Fraction of parameter draws with positive net monetary benefit.

    ``should_stop`` is polled after every completed draw; when it returns
    True the remaining draws are skipped and the result is flagged
    ``partial``.
    """
    base_params = base_params or calculator.economics
    rng = np.random.default_rng(settings.seed)

    net_benefits = []
    for _ in range(settings.draws):
        params = sample_parameters(base_params, settings.distributions, rng)
        net_benefits.append(calculator.evaluate(config, economics=params).net_benefit)
        if should_stop is not None and should_stop():
            break

    values = np.asarray(net_benefits, dtype=float)
    completed = len(values)
    partial = completed < settings.draws
    if partial:
        logger.warning(
            "Monte Carlo run stopped after %d of %d draws", completed, settings.draws
        )

    tail = (1.0 - settings.interval) / 2.0 * 100.0
    lower, upper = np.percentile(values, [tail, 100.0 - tail])
    return MonteCarloResult(
        probability_positive_nmb=float(np.mean(values > 0)),
        draws_requested=settings.draws,
        draws_completed=completed,
        partial=partial,
        net_benefits=values,
        mean_net_benefit=float(np.mean(values)),
        interval=(float(lower), float(upper)),
    )


@log_call
def acceptability_curve(
    calculator: MandateCalculator,
    config: PolicyConfiguration,
    settings: SensitivitySettings,
    valuations: Iterable[float],
) -> pd.DataFrame:
    """
    Probability of positive net benefit at each valuation threshold.

    Each threshold replaces the value per life (or per QALY under the QALY
    valuation) and is held fixed across draws. All thresholds reuse the
    same seed.
    """
    field_name = (
        "value_per_qaly"
        if calculator.economics.valuation is Valuation.QALY
        else "value_per_life"
    )
    distributions = {
        name: dist for name, dist in settings.distributions.items() if name != field_name
    }
    fixed_settings = SensitivitySettings(
        draws=settings.draws,
        seed=settings.seed,
        interval=settings.interval,
        distributions=distributions,
    )

    rows = []
    for valuation in valuations:
        base = calculator.economics.with_updates(**{field_name: float(valuation)})
        result = run_monte_carlo(calculator, config, fixed_settings, base_params=base)
        rows.append(
            {
                "valuation": float(valuation),
                "probability_positive_nmb": result.probability_positive_nmb,
                "mean_net_benefit": result.mean_net_benefit,
            }
        )
    return pd.DataFrame(rows, columns=["valuation", "probability_positive_nmb", "mean_net_benefit"])
