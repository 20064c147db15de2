"""
Integration test for the policy evaluation experiment runner.
"""

import importlib.util
import json
from pathlib import Path

import pytest

from config import build_calculator, build_policy, build_sensitivity_settings, load_config
from mandate_dce import acceptability_curve, run_monte_carlo

RUNNER = Path(__file__).resolve().parents[1] / "experiments" / "run_policy_evaluation.py"


def _load_runner():
    spec = importlib.util.spec_from_file_location("run_policy_evaluation", RUNNER)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


@pytest.mark.integration
def test_runner_pipeline(tmp_path):
    runner = _load_runner()
    cfg = load_config(["sensitivity=quick"])
    cfg.output.output_dir = str(tmp_path)
    calculator = build_calculator(cfg)
    name, policy, notes = build_policy(cfg)

    archive = runner.build_comparison_archive(calculator, name, policy, notes)
    # configured policy plus the five other scope/coverage combinations
    assert len(archive) == 6
    assert archive.records[0].name == name

    settings = build_sensitivity_settings(cfg)
    mc = run_monte_carlo(calculator, policy, settings)
    thresholds, label = runner.acceptability_thresholds(cfg)
    assert label == "Value per life"
    curve = acceptability_curve(calculator, policy, settings, thresholds)

    output_dir = runner.create_output_directory(cfg)
    runner.create_visualizations(archive, curve, output_dir, label)
    runner.save_results(
        archive,
        {"probability_positive_nmb": mc.probability_positive_nmb},
        curve,
        cfg,
        output_dir,
    )

    assert (output_dir / "policy_evaluation.png").exists()
    assert (output_dir / "scenarios.csv").exists()
    assert (output_dir / "acceptability_curve.csv").exists()
    with open(output_dir / "summary.json") as f:
        assert "probability_positive_nmb" in json.load(f)


@pytest.mark.integration
def test_qaly_acceptability_curve(tmp_path):
    runner = _load_runner()
    cfg = load_config(["economics=qaly", "sensitivity=quick"])
    cfg.output.output_dir = str(tmp_path)
    calculator = build_calculator(cfg)
    _, policy, _ = build_policy(cfg)
    settings = build_sensitivity_settings(cfg)

    thresholds, label = runner.acceptability_thresholds(cfg)
    assert label == "Value per QALY"
    assert thresholds == list(cfg.sensitivity.acceptability_qaly_valuations)
    assert max(thresholds) < min(cfg.sensitivity.acceptability_valuations)

    curve = acceptability_curve(calculator, policy, settings, thresholds)
    probabilities = curve["probability_positive_nmb"].tolist()
    assert probabilities == sorted(probabilities)
    # the cheapest QALY threshold does not cover the programme cost in every draw
    assert probabilities[0] < 1.0
    assert probabilities[-1] == 1.0

    output_dir = runner.create_output_directory(cfg)
    archive = runner.build_comparison_archive(calculator, "qaly", policy, "")
    runner.create_visualizations(archive, curve, output_dir, label)
    assert (output_dir / "policy_evaluation.png").exists()
