"""
Utility and choice probability engine.

Support for a mandate is modelled as a binary choice between the mandate
alternative and an opt-out ("no mandate") alternative:

    V_mandate = ASC_mandate + sum(beta_level for selected levels)
                + beta_lives * lives
    V_optout  = ASC_optout
    P(mandate) = exp(V_mandate) / (exp(V_mandate) + exp(V_optout))

Three models are available: the mixed logit means (``mxl``), a share-weighted
average over latent classes (``latent_class``) and a fixed-weight blend of the
two (``hybrid``).
"""

import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional, Tuple

import numpy as np

from utils.logging import log_call

from .coefficients import CoefficientSet, CoefficientStore, LatentClassModel
from .errors import ValidationError
from .policy import OutbreakScenario, PolicyConfiguration

logger = logging.getLogger(__name__)

# Utilities are clamped to this magnitude before exponentiation.
UTILITY_CLAMP = 700.0
# Utility differences beyond this saturate the probability to 0 or 1.
SATURATION_DIFFERENCE = 30.0


class LivesScale(str, Enum):
    """How the lives-saved attribute enters the utility."""

    RAW = "raw"
    DELTA = "delta"


class ChoiceModel(str, Enum):
    MXL = "mxl"
    LATENT_CLASS = "latent_class"
    HYBRID = "hybrid"


@dataclass(frozen=True)
class UtilitySpecification:
    """
    Convention used to build the mandate utility.

    Parameters
    ----------
    lives_scale : LivesScale, default=RAW
        ``RAW`` multiplies the lives coefficient by the lives-saved level;
        ``DELTA`` multiplies it by ``lives_saved - reference_lives``
    reference_lives : float, default=0.0
        Reference lives-saved level for the ``DELTA`` convention
    include_mandate_constant : bool, default=True
        Whether the mandate alternative carries its own constant; when
        ``False`` the mandate is the baseline and starts from zero
    """

    lives_scale: LivesScale = LivesScale.RAW
    reference_lives: float = 0.0
    include_mandate_constant: bool = True

    def __post_init__(self) -> None:
        try:
            object.__setattr__(self, "lives_scale", LivesScale(self.lives_scale))
        except ValueError:
            raise ValidationError(f"Unknown lives scale '{self.lives_scale}'") from None
        if not math.isfinite(self.reference_lives) or self.reference_lives < 0:
            raise ValidationError(
                f"reference_lives must be finite and non-negative, got {self.reference_lives!r}"
            )


@dataclass(frozen=True)
class ModelOptions:
    """
    Choice model selection.

    ``blend_weight`` is the weight on the mixed logit probability in
    ``HYBRID`` mode; the latent-class probability gets ``1 - blend_weight``.
    """

    mode: ChoiceModel = ChoiceModel.MXL
    blend_weight: float = 0.5
    specification: UtilitySpecification = field(default_factory=UtilitySpecification)
    uptake_min_utility: float = -1.0
    uptake_max_utility: float = 5.0

    def __post_init__(self) -> None:
        try:
            object.__setattr__(self, "mode", ChoiceModel(self.mode))
        except ValueError:
            raise ValidationError(f"Unknown choice model '{self.mode}'") from None
        if not 0.0 <= self.blend_weight <= 1.0:
            raise ValidationError(
                f"blend_weight must be in [0, 1], got {self.blend_weight!r}"
            )
        if not self.uptake_max_utility > self.uptake_min_utility:
            raise ValidationError("uptake_max_utility must exceed uptake_min_utility")


@dataclass(frozen=True)
class ChoiceResult:
    """Predicted support for one configuration."""

    probability: float
    opt_out_probability: float
    utility_mandate: float
    utility_opt_out: float
    model: ChoiceModel = ChoiceModel.MXL
    class_probabilities: Dict[str, float] = field(default_factory=dict)


@log_call
def mandate_utility(
    config: PolicyConfiguration,
    coefficients: CoefficientSet,
    specification: Optional[UtilitySpecification] = None,
) -> float:
    """Systematic utility of the mandate alternative."""
    specification = specification or UtilitySpecification()

    utility = coefficients.mandate_constant if specification.include_mandate_constant else 0.0
    for level in config.selected_levels():
        utility += coefficients.coefficient(level)

    lives = config.lives_saved
    if specification.lives_scale is LivesScale.DELTA:
        lives = lives - specification.reference_lives
    utility += coefficients.lives_coefficient * lives
    return utility


@log_call
def opt_out_utility(coefficients: CoefficientSet) -> float:
    """Systematic utility of the no-mandate alternative."""
    return coefficients.opt_out_constant


@log_call
def binary_choice_probability(v_mandate: float, v_opt_out: float) -> float:
    """
    Probability of choosing the mandate over the opt-out.

    Utilities are clamped to ``±UTILITY_CLAMP`` and shifted by
    ``max(V_mandate, V_optout, 0)`` before exponentiation. Differences larger
    than ``SATURATION_DIFFERENCE`` return exactly 0.0 or 1.0.
    """
    if math.isnan(v_mandate) or math.isnan(v_opt_out):
        raise ValidationError("Utilities must not be NaN")

    clamped_mandate = float(np.clip(v_mandate, -UTILITY_CLAMP, UTILITY_CLAMP))
    clamped_opt_out = float(np.clip(v_opt_out, -UTILITY_CLAMP, UTILITY_CLAMP))
    if clamped_mandate != v_mandate or clamped_opt_out != v_opt_out:
        logger.debug(
            "Clamped utilities (%.3g, %.3g) to (%.3g, %.3g)",
            v_mandate, v_opt_out, clamped_mandate, clamped_opt_out,
        )

    difference = clamped_mandate - clamped_opt_out
    if difference > SATURATION_DIFFERENCE:
        return 1.0
    if difference < -SATURATION_DIFFERENCE:
        return 0.0

    shift = max(clamped_mandate, clamped_opt_out, 0.0)
    exp_mandate = np.exp(clamped_mandate - shift)
    exp_opt_out = np.exp(clamped_opt_out - shift)
    denominator = exp_mandate + exp_opt_out
    if denominator == 0.0:
        # both terms underflowed, so the utilities were effectively equal
        return 0.5
    return float(min(1.0, max(0.0, exp_mandate / denominator)))


@log_call
def compute_choice_probability(
    config: PolicyConfiguration,
    store: CoefficientStore,
    specification: Optional[UtilitySpecification] = None,
    fallback: Optional[OutbreakScenario] = None,
) -> float:
    """
    Mixed logit probability of supporting the mandate in ``config``.

    Raises :class:`~mandate_dce.errors.ConfigurationNotFound` when the store
    has no coefficients for the configuration's country and scenario, unless
    an explicit ``fallback`` scenario is given.
    """
    coefficients = store.get(config.country, config.scenario, fallback=fallback)
    return binary_choice_probability(
        mandate_utility(config, coefficients, specification),
        opt_out_utility(coefficients),
    )


@log_call
def latent_class_probability(
    config: PolicyConfiguration,
    model: LatentClassModel,
    specification: Optional[UtilitySpecification] = None,
) -> Tuple[float, Dict[str, float]]:
    """
    Share-weighted support across latent classes.

    Returns
    -------
    probability : float
        ``sum(share_k * p_k)``
    class_probabilities : dict
        Per-class probability keyed by class name
    """
    class_probabilities = {}
    blended = 0.0
    for latent_class in model.classes:
        p_k = binary_choice_probability(
            mandate_utility(config, latent_class.coefficients, specification),
            opt_out_utility(latent_class.coefficients),
        )
        class_probabilities[latent_class.name] = p_k
        blended += latent_class.share * p_k

    # shares sum to one only within tolerance; keep the result inside the hull
    lower = min(class_probabilities.values())
    upper = max(class_probabilities.values())
    return min(upper, max(lower, blended)), class_probabilities


@log_call
def predict_support(
    config: PolicyConfiguration,
    store: CoefficientStore,
    options: Optional[ModelOptions] = None,
) -> ChoiceResult:
    """Predict support for ``config`` with the model selected in ``options``."""
    options = options or ModelOptions()
    specification = options.specification

    coefficients = store.get(config.country, config.scenario)
    v_mandate = mandate_utility(config, coefficients, specification)
    v_opt_out = opt_out_utility(coefficients)
    p_mxl = binary_choice_probability(v_mandate, v_opt_out)

    class_probabilities: Dict[str, float] = {}
    if options.mode is ChoiceModel.MXL:
        probability = p_mxl
    else:
        model = store.latent_classes(config.country, config.scenario)
        p_lc, class_probabilities = latent_class_probability(config, model, specification)
        if options.mode is ChoiceModel.LATENT_CLASS:
            probability = p_lc
        else:
            probability = options.blend_weight * p_mxl + (1.0 - options.blend_weight) * p_lc

    return ChoiceResult(
        probability=probability,
        opt_out_probability=1.0 - probability,
        utility_mandate=v_mandate,
        utility_opt_out=v_opt_out,
        model=options.mode,
        class_probabilities=class_probabilities,
    )


@log_call
def attribute_utility(config: PolicyConfiguration, coefficients: CoefficientSet) -> float:
    """
    Attribute part of the mandate utility: selected levels plus the raw lives
    term, with no alternative-specific constant. This is the utility the
    uptake index is scaled from.
    """
    return mandate_utility(
        config, coefficients, UtilitySpecification(include_mandate_constant=False)
    )


@log_call
def uptake_score(utility: float, low: float = -1.0, high: float = 5.0) -> int:
    """
    Min-max normalised uptake index on a 0-100 scale.

    ``utility`` is expected to come from :func:`attribute_utility`; the
    default bounds of -1 and 5 are set for that scale.

    A display index only; the choice probability is the quantity used in
    the economic calculations.
    """
    if not high > low:
        raise ValidationError("high must exceed low")
    score = (utility - low) / (high - low) * 100.0
    return int(round(min(100.0, max(0.0, score))))
