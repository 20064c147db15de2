from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from hydra import compose, initialize_config_dir
from omegaconf import DictConfig, OmegaConf

from mandate_dce import (
    CoefficientStore,
    EconomicParameters,
    MandateCalculator,
    ModelOptions,
    PolicyConfiguration,
    SensitivitySettings,
    UtilitySpecification,
    WTSTable,
)
from utils.logging import log_call
from utils.validation import validate_config

from .schemas import DistributionConfig, EconomicsConfig, ModelConfig, PolicyConfig

CONFIG_DIR = Path(__file__).resolve().parents[2] / "configs"


def _typed_section(schema: Any, section: DictConfig) -> Dict[str, Any]:
    """Merge a config section onto its structured schema and return a dict."""
    merged = OmegaConf.merge(OmegaConf.structured(schema), section)
    return OmegaConf.to_container(merged, resolve=True)


@log_call
def load_config(overrides: Optional[List[str]] = None) -> DictConfig:
    """Load and validate a configuration using Hydra."""

    overrides = overrides or []
    with initialize_config_dir(
        CONFIG_DIR.resolve().as_posix(), version_base=None
    ):
        cfg = compose(config_name="config", overrides=overrides)
    validate_config(cfg)
    return cfg


@log_call
def build_model_options(cfg: DictConfig) -> ModelOptions:
    model = _typed_section(ModelConfig, cfg.model)
    return ModelOptions(
        mode=model["mode"],
        blend_weight=model["blend_weight"],
        specification=UtilitySpecification(
            lives_scale=model["lives_scale"],
            reference_lives=model["reference_lives"],
            include_mandate_constant=model["include_mandate_constant"],
        ),
        uptake_min_utility=model["uptake_min_utility"],
        uptake_max_utility=model["uptake_max_utility"],
    )


@log_call
def build_economics(cfg: DictConfig) -> EconomicParameters:
    return EconomicParameters.from_mapping(_typed_section(EconomicsConfig, cfg.economics))


@log_call
def build_calculator(cfg: DictConfig) -> MandateCalculator:
    """Translate a loaded configuration into a ready calculator."""
    store = CoefficientStore.from_mapping(
        OmegaConf.to_container(cfg.coefficients, resolve=True)
    )
    if cfg.wts.source == "derived":
        wts_table = WTSTable.derive(store)
    else:
        wts_table = WTSTable.from_mapping(
            OmegaConf.to_container(cfg.wts.entries, resolve=True)
        )
    return MandateCalculator(
        store=store,
        wts_table=wts_table,
        economics=build_economics(cfg),
        options=build_model_options(cfg),
    )


@log_call
def build_policy(cfg: DictConfig) -> Tuple[str, PolicyConfiguration, str]:
    """Return ``(name, configuration, notes)`` for the configured policy."""
    policy = _typed_section(PolicyConfig, cfg.policy)
    return policy["name"], PolicyConfiguration.from_mapping(policy), policy["notes"]


@log_call
def build_sensitivity_settings(cfg: DictConfig) -> SensitivitySettings:
    data = OmegaConf.to_container(cfg.sensitivity, resolve=True)
    for name, node in cfg.sensitivity.items():
        if isinstance(node, DictConfig):
            data[name] = _typed_section(DistributionConfig, node)
    return SensitivitySettings.from_mapping(data, valuation=cfg.economics.valuation)
