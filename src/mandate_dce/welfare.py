"""
Welfare equivalence: express mandate attributes in lives saved.

The WTS values of the selected attribute levels are summed and subtracted from
the lives saved by the mandate. A mandate that saves 20 lives per 100,000 but
covers all occupations (WTS 4.4) is worth about 15.6 lives per 100,000 to the
public.
"""

from dataclasses import dataclass, field
from typing import Dict

from scipy.stats import norm

from utils.logging import log_call

from .errors import ValidationError
from .policy import AttributeLevel, PolicyConfiguration
from .wts import WTSEntry, WTSTable, ratio_standard_error


@dataclass(frozen=True)
class WelfareResult:
    base_lives: float
    adjustment: float
    equivalent_lives: float
    components: Dict[AttributeLevel, float] = field(default_factory=dict)


@dataclass(frozen=True)
class WTSInterval:
    estimate: float
    standard_error: float
    lower: float
    upper: float
    level: float = 0.95


def _z_value(level: float) -> float:
    if not 0.0 < level < 1.0:
        raise ValidationError(f"Confidence level must be in (0, 1), got {level!r}")
    return float(norm.ppf(0.5 + level / 2.0))


@log_call
def compute_welfare_equivalent_lives(
    config: PolicyConfiguration, wts_table: WTSTable
) -> WelfareResult:
    """
    Lives-saved equivalent of the configured mandate.

    ``adjustment`` is the sum of WTS values for the selected non-reference
    levels (scope, at most one exemption level, at most one coverage level).
    """
    components = {
        level: wts_table.get(config.country, config.scenario, level).value
        for level in config.selected_levels()
    }
    adjustment = sum(components.values())
    return WelfareResult(
        base_lives=config.lives_saved,
        adjustment=adjustment,
        equivalent_lives=config.lives_saved - adjustment,
        components=components,
    )


@log_call
def wts_confidence_interval(
    attribute_coefficient: float,
    attribute_se: float,
    lives_coefficient: float,
    lives_se: float,
    reference_lives: float = 1.0,
    level: float = 0.95,
) -> WTSInterval:
    """
    Delta-method interval for ``-(attribute / lives) * reference_lives``.

    Coefficient covariance is ignored (independence approximation), so the
    interval is indicative rather than exact inference.
    """
    if attribute_se < 0 or lives_se < 0:
        raise ValidationError("Standard errors must be non-negative")
    se = ratio_standard_error(
        attribute_coefficient, attribute_se, lives_coefficient, lives_se, reference_lives
    )
    estimate = -(attribute_coefficient / lives_coefficient) * reference_lives
    z = _z_value(level)
    return WTSInterval(
        estimate=estimate,
        standard_error=se,
        lower=estimate - z * se,
        upper=estimate + z * se,
        level=level,
    )


@log_call
def entry_confidence_interval(entry: WTSEntry, level: float = 0.95) -> WTSInterval:
    """Normal interval around a tabulated WTS value."""
    z = _z_value(level)
    return WTSInterval(
        estimate=entry.value,
        standard_error=entry.standard_error,
        lower=entry.value - z * entry.standard_error,
        upper=entry.value + z * entry.standard_error,
        level=level,
    )


@log_call
def equivalent_lives_interval(
    config: PolicyConfiguration, wts_table: WTSTable, level: float = 0.95
) -> WTSInterval:
    """
    Interval for the equivalent lives of ``config``.

    Entry standard errors are combined in quadrature, again assuming
    independence between levels.
    """
    result = compute_welfare_equivalent_lives(config, wts_table)
    variance = sum(
        wts_table.get(config.country, config.scenario, level_).standard_error ** 2
        for level_ in config.selected_levels()
    )
    se = variance ** 0.5
    z = _z_value(level)
    return WTSInterval(
        estimate=result.equivalent_lives,
        standard_error=se,
        lower=result.equivalent_lives - z * se,
        upper=result.equivalent_lives + z * se,
        level=level,
    )
