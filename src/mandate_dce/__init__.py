"""Vaccine mandate decision-support calculator."""

from typing import List

from .errors import (
    ConfigurationNotFound,
    MandateCalculatorError,
    UndefinedRatio,
    UNDEFINED,
    ValidationError,
    is_undefined,
)
from .policy import (
    AttributeLevel,
    Country,
    ExemptionPolicy,
    OutbreakScenario,
    PolicyConfiguration,
    Scope,
    COVERAGE_LEVELS,
)
from .coefficients import (
    CoefficientSet,
    CoefficientStore,
    LatentClass,
    LatentClassModel
)
from .wts import WTSEntry, WTSTable
from .choice import (
    ChoiceModel,
    ChoiceResult,
    LivesScale,
    ModelOptions,
    UtilitySpecification,
    attribute_utility,
    binary_choice_probability,
    compute_choice_probability,
    latent_class_probability,
    mandate_utility,
    opt_out_utility,
    predict_support,
    uptake_score
)
from .welfare import (
    WelfareResult,
    WTSInterval,
    compute_welfare_equivalent_lives,
    entry_confidence_interval,
    equivalent_lives_interval,
    wts_confidence_interval
)
from .economics import (
    EconomicParameters,
    EvaluationOutput,
    Valuation,
    benefit_cost_ratio,
    compute_outputs
)
from .evaluation import MandateCalculator
from .sensitivity import (
    MonteCarloResult,
    ParameterDistribution,
    SensitivitySettings,
    acceptability_curve,
    run_monte_carlo
)
from .archive import EXPORT_COLUMNS, ScenarioArchive, ScenarioRecord

__all__: List[str] = [
    # Errors
    "ConfigurationNotFound",
    "MandateCalculatorError",
    "UndefinedRatio",
    "UNDEFINED",
    "ValidationError",
    "is_undefined",
    # Policy configuration
    "AttributeLevel",
    "Country",
    "ExemptionPolicy",
    "OutbreakScenario",
    "PolicyConfiguration",
    "Scope",
    "COVERAGE_LEVELS",
    # Coefficients and WTS
    "CoefficientSet",
    "CoefficientStore",
    "LatentClass",
    "LatentClassModel",
    "WTSEntry",
    "WTSTable",
    # Choice engine
    "ChoiceModel",
    "ChoiceResult",
    "LivesScale",
    "ModelOptions",
    "UtilitySpecification",
    "attribute_utility",
    "binary_choice_probability",
    "compute_choice_probability",
    "latent_class_probability",
    "mandate_utility",
    "opt_out_utility",
    "predict_support",
    "uptake_score",
    # Welfare
    "WelfareResult",
    "WTSInterval",
    "compute_welfare_equivalent_lives",
    "entry_confidence_interval",
    "equivalent_lives_interval",
    "wts_confidence_interval",
    # Economics
    "EconomicParameters",
    "EvaluationOutput",
    "Valuation",
    "benefit_cost_ratio",
    "compute_outputs",
    "MandateCalculator",
    # Sensitivity
    "MonteCarloResult",
    "ParameterDistribution",
    "SensitivitySettings",
    "acceptability_curve",
    "run_monte_carlo",
    # Archive
    "EXPORT_COLUMNS",
    "ScenarioArchive",
    "ScenarioRecord",
]
__version__ = "0.1.0"
