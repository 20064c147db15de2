"""
Coefficient store for the discrete choice experiment.

Holds the mixed logit mean coefficients for every (country, outbreak scenario)
pair and, where estimated, the latent-class sub-models. The store is built
from a plain nested mapping (as produced by ``OmegaConf.to_container``) and is
checked exhaustively at construction: a country/scenario pair referenced by
the policy enums but missing from the data fails immediately rather than at
lookup time.
"""

import math
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Tuple

from utils.logging import log_call

from .errors import ConfigurationNotFound, ValidationError
from .policy import AttributeLevel, Country, OutbreakScenario

SHARE_TOLERANCE = 1e-9

ScenarioKey = Tuple[Country, OutbreakScenario]


def _require_number(data: Mapping[str, Any], key: str, where: str) -> float:
    if key not in data:
        raise ValidationError(f"{where}: missing required field '{key}'")
    try:
        value = float(data[key])
    except (TypeError, ValueError):
        raise ValidationError(f"{where}: '{key}' must be numeric, got {data[key]!r}") from None
    if not math.isfinite(value):
        raise ValidationError(f"{where}: '{key}' must be finite, got {value!r}")
    return value


@dataclass(frozen=True)
class CoefficientSet:
    """
    Utility coefficients for one preference model.

    ``attributes`` maps every non-reference :class:`AttributeLevel` to its mean
    coefficient. ``standard_errors`` is optional and keyed by attribute value
    (``"scope_all"``, ...) plus ``"lives"`` for the lives coefficient.
    """

    mandate_constant: float
    opt_out_constant: float
    lives_coefficient: float
    attributes: Mapping[AttributeLevel, float]
    standard_errors: Mapping[str, float] = field(default_factory=dict)

    @classmethod
    @log_call
    def from_mapping(cls, data: Mapping[str, Any], where: str = "coefficients") -> "CoefficientSet":
        raw_attributes = data.get("attributes")
        if not isinstance(raw_attributes, Mapping):
            raise ValidationError(f"{where}: missing required mapping 'attributes'")

        attributes: Dict[AttributeLevel, float] = {}
        for level in AttributeLevel:
            attributes[level] = _require_number(raw_attributes, level.value, where)
        extra = set(raw_attributes) - {level.value for level in AttributeLevel}
        if extra:
            raise ValidationError(f"{where}: unknown attribute level(s) {sorted(extra)}")

        standard_errors = {}
        for key, value in (data.get("standard_errors") or {}).items():
            se = _require_number({key: value}, key, f"{where}.standard_errors")
            if se < 0:
                raise ValidationError(f"{where}: standard error for '{key}' is negative")
            standard_errors[str(key)] = se

        return cls(
            mandate_constant=_require_number(data, "mandate_constant", where),
            opt_out_constant=_require_number(data, "opt_out_constant", where),
            lives_coefficient=_require_number(data, "lives", where),
            attributes=attributes,
            standard_errors=standard_errors,
        )

    @log_call
    def coefficient(self, level: AttributeLevel) -> float:
        """Mean coefficient for ``level``."""
        try:
            return self.attributes[level]
        except KeyError:
            raise ConfigurationNotFound(f"No coefficient for attribute level '{level}'") from None

    @log_call
    def standard_error(self, name: str) -> Optional[float]:
        """Standard error for an attribute key or ``"lives"``, if estimated."""
        key = name.value if isinstance(name, AttributeLevel) else name
        return self.standard_errors.get(key)


@dataclass(frozen=True)
class LatentClass:
    name: str
    share: float
    coefficients: CoefficientSet


@dataclass(frozen=True)
class LatentClassModel:
    """Latent classes for one country/scenario; shares must sum to one."""

    classes: Tuple[LatentClass, ...]

    def __post_init__(self) -> None:
        if len(self.classes) < 2:
            raise ValidationError("A latent class model needs at least two classes")
        for latent_class in self.classes:
            if not 0.0 <= latent_class.share <= 1.0:
                raise ValidationError(
                    f"Class share for '{latent_class.name}' must be in [0, 1], "
                    f"got {latent_class.share}"
                )
        total = sum(c.share for c in self.classes)
        if abs(total - 1.0) > SHARE_TOLERANCE:
            raise ValidationError(f"Latent class shares sum to {total}, expected 1")

    @property
    @log_call
    def shares(self) -> Tuple[float, ...]:
        return tuple(c.share for c in self.classes)


class CoefficientStore:
    """
    Coefficients indexed by (country, outbreak scenario).

    Parameters
    ----------
    mxl : dict
        Mapping from ``(Country, OutbreakScenario)`` to :class:`CoefficientSet`
    latent_classes : dict, optional
        Mapping from ``(Country, OutbreakScenario)`` to
        :class:`LatentClassModel`; pairs without an entry have no latent-class
        estimates
    require_complete : bool, default=True
        Fail unless every country/scenario combination has coefficients
    """

    def __init__(
        self,
        mxl: Mapping[ScenarioKey, CoefficientSet],
        latent_classes: Optional[Mapping[ScenarioKey, LatentClassModel]] = None,
        require_complete: bool = True,
    ):
        missing = [
            f"{country.value}/{scenario.value}"
            for country in Country
            for scenario in OutbreakScenario
            if (country, scenario) not in mxl
        ]
        if missing and require_complete:
            raise ConfigurationNotFound(
                f"Coefficient store is missing entries for: {', '.join(missing)}"
            )
        self._mxl: Dict[ScenarioKey, CoefficientSet] = dict(mxl)
        self._latent: Dict[ScenarioKey, LatentClassModel] = dict(latent_classes or {})

    @classmethod
    @log_call
    def from_mapping(
        cls, data: Mapping[str, Any], require_complete: bool = True
    ) -> "CoefficientStore":
        """
        Build the store from ``{country: {scenario: {...}}}``.

        Each scenario block holds ``mandate_constant``, ``opt_out_constant``,
        ``lives``, ``attributes``, optionally ``standard_errors`` and an
        optional ``latent_classes`` list whose items add ``name`` and ``share``.
        """
        mxl: Dict[ScenarioKey, CoefficientSet] = {}
        latent: Dict[ScenarioKey, LatentClassModel] = {}
        for country_name, scenarios in data.items():
            try:
                country = Country(country_name)
            except ValueError:
                raise ValidationError(f"Unknown country '{country_name}' in coefficients") from None
            for scenario_name, block in scenarios.items():
                try:
                    scenario = OutbreakScenario(scenario_name)
                except ValueError:
                    raise ValidationError(
                        f"Unknown outbreak scenario '{scenario_name}' for {country_name}"
                    ) from None
                where = f"{country_name}.{scenario_name}"
                mxl[(country, scenario)] = CoefficientSet.from_mapping(block, where)

                classes = block.get("latent_classes") or []
                if classes:
                    latent[(country, scenario)] = LatentClassModel(
                        tuple(
                            LatentClass(
                                name=str(item.get("name", f"class_{i + 1}")),
                                share=_require_number(item, "share", f"{where}.latent_classes[{i}]"),
                                coefficients=CoefficientSet.from_mapping(
                                    item, f"{where}.latent_classes[{i}]"
                                ),
                            )
                            for i, item in enumerate(classes)
                        )
                    )
        return cls(mxl, latent, require_complete=require_complete)

    @log_call
    def get(
        self,
        country: Country,
        scenario: OutbreakScenario,
        fallback: Optional[OutbreakScenario] = None,
    ) -> CoefficientSet:
        """
        Mixed logit coefficients for ``(country, scenario)``.

        Only when the caller passes ``fallback`` is another scenario of the
        same country tried.
        """
        key = (Country(country), OutbreakScenario(scenario))
        if key in self._mxl:
            return self._mxl[key]
        if fallback is not None and (key[0], OutbreakScenario(fallback)) in self._mxl:
            return self._mxl[(key[0], OutbreakScenario(fallback))]
        raise ConfigurationNotFound(
            f"No coefficients for country='{key[0].value}', scenario='{key[1].value}'"
        )

    @log_call
    def has_latent_classes(self, country: Country, scenario: OutbreakScenario) -> bool:
        return (Country(country), OutbreakScenario(scenario)) in self._latent

    @log_call
    def latent_classes(self, country: Country, scenario: OutbreakScenario) -> LatentClassModel:
        key = (Country(country), OutbreakScenario(scenario))
        if key not in self._latent:
            raise ConfigurationNotFound(
                f"No latent class model for country='{key[0].value}', "
                f"scenario='{key[1].value}'"
            )
        return self._latent[key]

    @log_call
    def keys(self) -> Tuple[ScenarioKey, ...]:
        return tuple(self._mxl)

    def __contains__(self, key: object) -> bool:
        return key in self._mxl

    def __len__(self) -> int:
        return len(self._mxl)
