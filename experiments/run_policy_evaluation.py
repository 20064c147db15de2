#!/usr/bin/env python3
"""
Policy Evaluation Experiment Runner

Evaluates the configured vaccine mandate, compares it with the other
coverage and scope levels for the same country and outbreak, runs the
probabilistic sensitivity analysis and saves the scenario archive and charts.

Usage:
    python experiments/run_policy_evaluation.py
    python experiments/run_policy_evaluation.py policy=severe_broad model=hybrid
    python experiments/run_policy_evaluation.py economics=qaly sensitivity=quick
"""

import os
import sys
import json
import logging
from itertools import product
from pathlib import Path
from typing import Dict, Any, List, Tuple

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
import pandas as pd
import seaborn as sns

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

import hydra
from omegaconf import DictConfig, OmegaConf
from mandate_dce import (
    MandateCalculator,
    PolicyConfiguration,
    ScenarioArchive,
    Scope,
    Valuation,
    COVERAGE_LEVELS,
    acceptability_curve,
    run_monte_carlo,
)
from config import build_calculator, build_policy, build_sensitivity_settings
from utils.validation import validate_config


def setup_logging(cfg: DictConfig) -> None:
    """Configure logging for the run."""
    logging.basicConfig(
        level=getattr(logging, cfg.logging.level.upper()),
        format=cfg.logging.log_format,
        handlers=[
            logging.FileHandler(cfg.logging.log_file),
            logging.StreamHandler()
        ],
        force=True,
    )


def create_output_directory(cfg: DictConfig) -> Path:
    """Create output directory for results."""
    output_dir = Path(cfg.output.output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    return output_dir


def acceptability_thresholds(cfg: DictConfig) -> Tuple[List[float], str]:
    """Thresholds and axis label matching the configured valuation."""
    if Valuation(cfg.economics.valuation) is Valuation.QALY:
        return list(cfg.sensitivity.acceptability_qaly_valuations), "Value per QALY"
    return list(cfg.sensitivity.acceptability_valuations), "Value per life"


def build_comparison_archive(
    calculator: MandateCalculator,
    name: str,
    policy: PolicyConfiguration,
    notes: str,
) -> ScenarioArchive:
    """Save the configured policy followed by every scope/coverage variant."""
    archive = ScenarioArchive()
    archive.save(name, policy, calculator.evaluate(policy), notes=notes)

    for scope, coverage in product(Scope, COVERAGE_LEVELS):
        variant = policy.with_changes(scope=scope, coverage=coverage)
        if variant == policy:
            continue
        archive.save(
            f"{scope.value}_cov{coverage}",
            variant,
            calculator.evaluate(variant),
            notes=f"Variant of {name}",
        )
    logging.info(f"Archived {len(archive)} scenarios")
    return archive


def create_visualizations(
    archive: ScenarioArchive,
    curve: pd.DataFrame,
    output_dir: Path,
    valuation_label: str = "Value per life",
) -> None:
    """Support by variant and the acceptability curve."""
    logging.info("Creating visualizations...")
    sns.set_palette("husl")

    table = archive.to_dataframe()
    fig, axes = plt.subplots(1, 2, figsize=(13, 5))

    sns.barplot(
        data=table,
        x="coverage",
        y="supportProbability",
        hue="scope",
        ax=axes[0],
    )
    axes[0].set_ylim(0, 1)
    axes[0].set_xlabel("Coverage threshold (%)")
    axes[0].set_ylabel("Predicted support")
    axes[0].set_title("Predicted support by scope and coverage")

    axes[1].plot(curve["valuation"], curve["probability_positive_nmb"], marker="o")
    axes[1].set_ylim(0, 1)
    axes[1].set_xlabel(valuation_label)
    axes[1].set_ylabel("P(net benefit > 0)")
    axes[1].set_title("Acceptability curve")
    axes[1].grid(True, alpha=0.3)

    plt.tight_layout()
    plt.savefig(output_dir / "policy_evaluation.png", dpi=150, bbox_inches="tight")
    plt.close(fig)
    logging.info(f"Visualizations saved to {output_dir}")


def save_results(
    archive: ScenarioArchive,
    summary: Dict[str, Any],
    curve: pd.DataFrame,
    cfg: DictConfig,
    output_dir: Path,
) -> None:
    """Write the archive, acceptability curve and summary to disk."""
    logging.info("Saving results...")
    if cfg.output.save_csv:
        archive.export_csv(output_dir / "scenarios.csv")
        curve.to_csv(output_dir / "acceptability_curve.csv", index=False)
    if cfg.output.save_json:
        archive.export_json(output_dir / "scenarios.json")
        with open(output_dir / "summary.json", "w") as f:
            json.dump(summary, f, indent=2)
    logging.info(f"Results saved to {output_dir}")


@hydra.main(version_base=None, config_path="../configs", config_name="config")
def main(cfg: DictConfig) -> None:
    """Main experiment runner."""
    setup_logging(cfg)
    logging.info("Starting policy evaluation")
    logging.info(f"Configuration:\n{OmegaConf.to_yaml(cfg)}")
    validate_config(cfg)

    output_dir = create_output_directory(cfg)
    calculator = build_calculator(cfg)
    name, policy, notes = build_policy(cfg)
    settings = build_sensitivity_settings(cfg)

    archive = build_comparison_archive(calculator, name, policy, notes)
    output = archive.get(name).output

    mc = run_monte_carlo(calculator, policy, settings)
    thresholds, valuation_label = acceptability_thresholds(cfg)
    curve = acceptability_curve(calculator, policy, settings, thresholds)

    summary = {
        "policy": policy.to_dict(),
        "model": cfg.model.mode,
        "output": output.to_flat_dict(),
        "monte_carlo": {
            "draws": mc.draws_completed,
            "partial": mc.partial,
            "probability_positive_nmb": mc.probability_positive_nmb,
            "mean_net_benefit": mc.mean_net_benefit,
            "interval": list(mc.interval),
        },
    }

    if cfg.output.save_plots:
        create_visualizations(archive, curve, output_dir, valuation_label)
    save_results(archive, summary, curve, cfg, output_dir)

    logging.info("Evaluation completed successfully!")
    logging.info(f"  - Support: {output.choice_probability:.3f}")
    logging.info(f"  - Equivalent lives per 100k: {output.welfare_equivalent_lives:.3f}")
    logging.info(f"  - National lives saved: {output.national_lives_saved:.1f}")
    logging.info(f"  - Net benefit: {output.net_benefit:,.0f}")
    logging.info(f"  - Benefit-cost ratio: {output.benefit_cost_ratio}")
    logging.info(f"  - P(NMB > 0): {mc.probability_positive_nmb:.3f}")


if __name__ == "__main__":
    main()
