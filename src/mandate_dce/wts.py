"""
Willingness-to-save-lives (WTS) table.

A WTS value expresses an attribute level in lives saved per 100,000 people:

    WTS = -(attribute coefficient / lives coefficient)

A positive value means the level lowers support and that many additional
lives saved would be needed to compensate for it; a negative value means the
level raises support. Values are either read from a precomputed table or
derived from a :class:`~mandate_dce.coefficients.CoefficientStore`.
"""

import math
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Tuple

from utils.logging import log_call

from .coefficients import CoefficientSet, CoefficientStore, ScenarioKey
from .errors import ConfigurationNotFound, ValidationError
from .policy import AttributeLevel, Country, OutbreakScenario


def _entry_number(item: Mapping[str, Any], key: str, where: str, default: Any = None) -> float:
    raw = item.get(key, default)
    if raw is None:
        raise ValidationError(f"WTS entry {where} has no {key}")
    try:
        return float(raw)
    except (TypeError, ValueError):
        raise ValidationError(
            f"WTS entry {where}: '{key}' must be numeric, got {raw!r}"
        ) from None


@dataclass(frozen=True)
class WTSEntry:
    value: float
    standard_error: float = 0.0
    significance: str = ""

    def __post_init__(self) -> None:
        if not math.isfinite(self.value):
            raise ValidationError(f"WTS value must be finite, got {self.value!r}")
        if not math.isfinite(self.standard_error) or self.standard_error < 0:
            raise ValidationError(
                f"WTS standard error must be finite and non-negative, got {self.standard_error!r}"
            )


@log_call
def ratio_standard_error(
    attribute_coefficient: float,
    attribute_se: float,
    lives_coefficient: float,
    lives_se: float,
    reference_lives: float = 1.0,
) -> float:
    """
    Delta-method standard error of ``(attribute / lives) * reference_lives``.

    The covariance between the two coefficients is ignored, so this is an
    approximation that treats the estimates as independent.
    """
    if lives_coefficient == 0:
        raise ValidationError("Lives coefficient is zero; WTS is not defined")
    d_attr = reference_lives / lives_coefficient
    d_lives = -reference_lives * attribute_coefficient / lives_coefficient ** 2
    return math.sqrt((d_attr * attribute_se) ** 2 + (d_lives * lives_se) ** 2)


@log_call
def derive_entry(coefficients: CoefficientSet, level: AttributeLevel) -> WTSEntry:
    """Compute the WTS entry for one level from a coefficient set."""
    beta = coefficients.coefficient(level)
    lives = coefficients.lives_coefficient
    if lives == 0:
        raise ValidationError("Lives coefficient is zero; WTS is not defined")

    attr_se = coefficients.standard_error(level)
    lives_se = coefficients.standard_error("lives")
    se = 0.0
    if attr_se is not None and lives_se is not None:
        se = ratio_standard_error(beta, attr_se, lives, lives_se)
    return WTSEntry(value=-beta / lives, standard_error=se, significance="derived")


class WTSTable:
    """WTS entries indexed by (country, scenario, attribute level)."""

    def __init__(self, entries: Mapping[ScenarioKey, Mapping[AttributeLevel, WTSEntry]]):
        self._entries: Dict[ScenarioKey, Dict[AttributeLevel, WTSEntry]] = {
            key: dict(levels) for key, levels in entries.items()
        }

    @classmethod
    @log_call
    def from_mapping(cls, data: Mapping[str, Any], require_complete: bool = True) -> "WTSTable":
        """
        Build from ``{country: {scenario: {level: {value, se, significance}}}}``.

        With ``require_complete`` every country, scenario and attribute level
        must have an entry.
        """
        entries: Dict[ScenarioKey, Dict[AttributeLevel, WTSEntry]] = {}
        for country_name, scenarios in data.items():
            for scenario_name, levels in scenarios.items():
                try:
                    key = (Country(country_name), OutbreakScenario(scenario_name))
                except ValueError:
                    raise ValidationError(
                        f"Unknown WTS table key '{country_name}/{scenario_name}'"
                    ) from None
                parsed: Dict[AttributeLevel, WTSEntry] = {}
                for level_name, item in levels.items():
                    try:
                        level = AttributeLevel(level_name)
                    except ValueError:
                        raise ValidationError(
                            f"Unknown attribute level '{level_name}' in WTS table"
                        ) from None
                    where = f"{country_name}.{scenario_name}.{level_name}"
                    parsed[level] = WTSEntry(
                        value=_entry_number(item, "value", where),
                        standard_error=_entry_number(item, "se", where, default=0.0),
                        significance=str(item.get("significance", "")),
                    )
                entries[key] = parsed

        if require_complete:
            missing = [
                f"{country.value}/{scenario.value}/{level.value}"
                for country in Country
                for scenario in OutbreakScenario
                for level in AttributeLevel
                if level not in entries.get((country, scenario), {})
            ]
            if missing:
                raise ConfigurationNotFound(
                    f"WTS table is missing entries for: {', '.join(missing)}"
                )
        return cls(entries)

    @classmethod
    @log_call
    def derive(cls, store: CoefficientStore) -> "WTSTable":
        """Derive every entry from the mixed logit coefficients in ``store``."""
        entries = {}
        for country, scenario in store.keys():
            coefficients = store.get(country, scenario)
            entries[(country, scenario)] = {
                level: derive_entry(coefficients, level) for level in AttributeLevel
            }
        return cls(entries)

    @log_call
    def get(
        self,
        country: Country,
        scenario: OutbreakScenario,
        level: AttributeLevel,
    ) -> WTSEntry:
        key = (Country(country), OutbreakScenario(scenario))
        level = AttributeLevel(level)
        try:
            return self._entries[key][level]
        except KeyError:
            raise ConfigurationNotFound(
                f"No WTS entry for {key[0].value}/{key[1].value}/{level.value}"
            ) from None

    @log_call
    def find(
        self,
        country: Country,
        scenario: OutbreakScenario,
        level: AttributeLevel,
    ) -> Optional[WTSEntry]:
        """Like :meth:`get` but returns ``None`` for a missing entry."""
        try:
            return self.get(country, scenario, level)
        except ConfigurationNotFound:
            return None

    @log_call
    def entries_for(
        self, country: Country, scenario: OutbreakScenario
    ) -> Dict[AttributeLevel, WTSEntry]:
        key = (Country(country), OutbreakScenario(scenario))
        if key not in self._entries:
            raise ConfigurationNotFound(
                f"No WTS entries for {key[0].value}/{key[1].value}"
            )
        return dict(self._entries[key])

    @log_call
    def keys(self) -> Tuple[ScenarioKey, ...]:
        return tuple(self._entries)
