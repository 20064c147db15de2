from omegaconf import DictConfig

from mandate_dce.policy import AttributeLevel, Country, OutbreakScenario
from utils.logging import log_call

SHARE_TOLERANCE = 1e-9


@log_call
def validate_config(cfg: DictConfig) -> None:
    """Validation for calculator configs, run once at load time."""

    for country in Country:
        if country.value not in cfg.coefficients:
            raise ValueError(f"coefficients missing country '{country.value}'")
        for scenario in OutbreakScenario:
            if scenario.value not in cfg.coefficients[country.value]:
                raise ValueError(
                    f"coefficients missing scenario '{country.value}/{scenario.value}'"
                )
            block = cfg.coefficients[country.value][scenario.value]
            for level in AttributeLevel:
                if level.value not in block.attributes:
                    raise ValueError(
                        f"{country.value}/{scenario.value} missing coefficient '{level.value}'"
                    )
            classes = block.get("latent_classes") or []
            if classes:
                total = sum(float(c.share) for c in classes)
                if abs(total - 1.0) > SHARE_TOLERANCE:
                    raise ValueError(
                        f"{country.value}/{scenario.value} latent class shares sum to {total}"
                    )

    if cfg.wts.source not in ("table", "derived"):
        raise ValueError("wts.source must be 'table' or 'derived'")
    if cfg.wts.source == "table":
        for country in Country:
            for scenario in OutbreakScenario:
                entries = cfg.wts.entries.get(country.value, {}).get(scenario.value)
                if entries is None:
                    raise ValueError(
                        f"wts table missing '{country.value}/{scenario.value}'"
                    )
                for level in AttributeLevel:
                    if level.value not in entries:
                        raise ValueError(
                            f"wts table missing '{country.value}/{scenario.value}/{level.value}'"
                        )

    if cfg.model.mode not in ("mxl", "latent_class", "hybrid"):
        raise ValueError(f"unknown model.mode '{cfg.model.mode}'")
    if not 0 <= cfg.model.blend_weight <= 1:
        raise ValueError("model.blend_weight must be between 0 and 1")

    for key in ("population_size", "fixed_cost", "per_capita_cost", "value_per_life"):
        if cfg.economics[key] < 0:
            raise ValueError(f"economics.{key} must be non-negative")
    if not 0 <= cfg.economics.vaccine_effectiveness <= 1:
        raise ValueError("economics.vaccine_effectiveness must be between 0 and 1")
    if cfg.sensitivity.draws <= 0:
        raise ValueError("sensitivity.draws must be positive")
