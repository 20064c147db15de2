"""
Policy configuration for a single mandate scenario.

A :class:`PolicyConfiguration` is an immutable value rebuilt from user input
on every interaction. Validation happens here, at the boundary, so the
utility, welfare and cost-benefit functions can assume well-formed input.
"""

import math
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Iterable, Mapping, Tuple

from utils.logging import log_call

from .errors import ValidationError


class Country(str, Enum):
    AUSTRALIA = "australia"
    FRANCE = "france"
    ITALY = "italy"


class OutbreakScenario(str, Enum):
    MILD = "mild"
    SEVERE = "severe"


class Scope(str, Enum):
    HIGH_RISK_ONLY = "highrisk"
    ALL_OCCUPATIONS = "all"


class ExemptionPolicy(str, Enum):
    MEDICAL_ONLY = "medical"
    MEDICAL_RELIGIOUS = "medical_religious"
    MEDICAL_RELIGIOUS_PERSONAL = "medical_religious_personal"


class AttributeLevel(str, Enum):
    """Non-reference attribute levels that carry a utility coefficient."""

    SCOPE_ALL = "scope_all"
    EXEMPTION_RELIGIOUS = "ex_rel"
    EXEMPTION_PERSONAL = "ex_pers"
    COVERAGE_70 = "cov70"
    COVERAGE_90 = "cov90"


COVERAGE_LEVELS: Tuple[int, ...] = (50, 70, 90)
REFERENCE_COVERAGE = 50

_COVERAGE_ATTRIBUTE = {
    70: AttributeLevel.COVERAGE_70,
    90: AttributeLevel.COVERAGE_90,
}
_EXEMPTION_ATTRIBUTE = {
    ExemptionPolicy.MEDICAL_RELIGIOUS: AttributeLevel.EXEMPTION_RELIGIOUS,
    ExemptionPolicy.MEDICAL_RELIGIOUS_PERSONAL: AttributeLevel.EXEMPTION_PERSONAL,
}


def _parse_enum(enum_cls, value: Any, field_name: str):
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).strip().lower())
    except ValueError:
        allowed = ", ".join(member.value for member in enum_cls)
        raise ValidationError(
            f"{field_name} must be one of [{allowed}], got {value!r}"
        ) from None


@log_call
def exemption_from_checkboxes(checked: Iterable[str]) -> ExemptionPolicy:
    """
    Map the exemption checkboxes of the web form to an exemption policy.

    Medical exemptions are always granted. Ticking ``personal`` implies the
    broadest policy whether or not ``religious`` is also ticked.
    """
    boxes = {str(box).strip().lower() for box in checked}
    unknown = boxes - {"medical", "religious", "personal"}
    if unknown:
        raise ValidationError(f"Unknown exemption option(s): {sorted(unknown)}")
    if "personal" in boxes:
        return ExemptionPolicy.MEDICAL_RELIGIOUS_PERSONAL
    if "religious" in boxes:
        return ExemptionPolicy.MEDICAL_RELIGIOUS
    return ExemptionPolicy.MEDICAL_ONLY


@dataclass(frozen=True)
class PolicyConfiguration:
    """
    One mandate configuration to evaluate.

    Parameters
    ----------
    country : Country
        Country whose preference estimates apply
    scenario : OutbreakScenario
        Outbreak severity the respondents were asked about
    scope : Scope
        Occupations covered by the mandate
    exemptions : ExemptionPolicy
        Exemptions permitted under the mandate
    coverage : int
        Vaccination coverage threshold (percent) at which the mandate is
        lifted; one of ``COVERAGE_LEVELS``
    lives_saved : float
        Expected lives saved per 100,000 people
    """

    country: Country = Country.AUSTRALIA
    scenario: OutbreakScenario = OutbreakScenario.MILD
    scope: Scope = Scope.HIGH_RISK_ONLY
    exemptions: ExemptionPolicy = ExemptionPolicy.MEDICAL_ONLY
    coverage: int = REFERENCE_COVERAGE
    lives_saved: float = 20.0

    def __post_init__(self) -> None:
        object.__setattr__(self, "country", _parse_enum(Country, self.country, "country"))
        object.__setattr__(
            self, "scenario", _parse_enum(OutbreakScenario, self.scenario, "scenario")
        )
        object.__setattr__(self, "scope", _parse_enum(Scope, self.scope, "scope"))
        object.__setattr__(
            self, "exemptions", _parse_enum(ExemptionPolicy, self.exemptions, "exemptions")
        )

        if isinstance(self.coverage, bool) or self.coverage not in COVERAGE_LEVELS:
            raise ValidationError(
                f"coverage must be one of {list(COVERAGE_LEVELS)}, got {self.coverage!r}"
            )
        object.__setattr__(self, "coverage", int(self.coverage))

        try:
            lives = float(self.lives_saved)
        except (TypeError, ValueError):
            raise ValidationError(
                f"lives_saved must be a number, got {self.lives_saved!r}"
            ) from None
        if not math.isfinite(lives) or lives < 0:
            raise ValidationError(
                f"lives_saved must be finite and non-negative, got {self.lives_saved!r}"
            )
        object.__setattr__(self, "lives_saved", lives)

    @classmethod
    @log_call
    def from_mapping(cls, state: Mapping[str, Any]) -> "PolicyConfiguration":
        """
        Build a configuration from a form-state mapping.

        Accepts the keys used by the web form (``country``, ``scenario``,
        ``scope``, ``exemptions``, ``coverage``, ``livesSaved``). ``exemptions``
        may be a list of ticked checkboxes or an :class:`ExemptionPolicy` value.
        Missing keys take the reference defaults.
        """
        defaults = cls()
        exemptions = state.get("exemptions", defaults.exemptions)
        if not isinstance(exemptions, (str, ExemptionPolicy)):
            exemptions = exemption_from_checkboxes(exemptions)

        coverage = state.get("coverage", defaults.coverage)
        if isinstance(coverage, str):
            try:
                coverage = int(coverage.strip().rstrip("%"))
            except ValueError:
                raise ValidationError(f"coverage must be an integer, got {coverage!r}") from None

        lives = state.get("livesSaved", state.get("lives_saved", defaults.lives_saved))
        return cls(
            country=state.get("country", defaults.country),
            scenario=state.get("scenario", defaults.scenario),
            scope=state.get("scope", defaults.scope),
            exemptions=exemptions,
            coverage=coverage,
            lives_saved=lives,
        )

    @log_call
    def selected_levels(self) -> Tuple[AttributeLevel, ...]:
        """Non-reference attribute levels switched on by this configuration."""
        levels = []
        if self.scope is Scope.ALL_OCCUPATIONS:
            levels.append(AttributeLevel.SCOPE_ALL)
        if self.exemptions in _EXEMPTION_ATTRIBUTE:
            levels.append(_EXEMPTION_ATTRIBUTE[self.exemptions])
        if self.coverage in _COVERAGE_ATTRIBUTE:
            levels.append(_COVERAGE_ATTRIBUTE[self.coverage])
        return tuple(levels)

    @log_call
    def with_changes(self, **changes: Any) -> "PolicyConfiguration":
        """Return a copy with some fields replaced (validated again)."""
        return replace(self, **changes)

    @log_call
    def to_dict(self) -> dict:
        return {
            "country": self.country.value,
            "scenario": self.scenario.value,
            "scope": self.scope.value,
            "exemptions": self.exemptions.value,
            "coverage": self.coverage,
            "livesSaved": self.lives_saved,
        }
