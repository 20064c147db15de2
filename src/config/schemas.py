from dataclasses import dataclass, field
from typing import List


@dataclass
class ModelConfig:
    mode: str = "mxl"
    blend_weight: float = 0.5
    lives_scale: str = "raw"
    reference_lives: float = 0.0
    include_mandate_constant: bool = True
    uptake_min_utility: float = -1.0
    uptake_max_utility: float = 5.0


@dataclass
class EconomicsConfig:
    population_size: float
    value_per_life: float
    fixed_cost: float
    per_capita_cost: float
    valuation: str = "value_per_life"
    qaly_per_life: float = 0.0
    morbidity_qaly_gain: float = 0.0
    value_per_qaly: float = 0.0
    vaccine_effectiveness: float = 1.0


@dataclass
class DistributionConfig:
    mean: float
    sd: float
    lower: float
    upper: float


@dataclass
class PolicyConfig:
    name: str = "baseline"
    country: str = "australia"
    scenario: str = "mild"
    scope: str = "highrisk"
    exemptions: List[str] = field(default_factory=list)
    coverage: int = 50
    livesSaved: float = 20.0
    notes: str = ""
