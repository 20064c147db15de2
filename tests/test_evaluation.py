"""
Tests for the end-to-end evaluation pipeline.
"""

import math

import pandas as pd
import pytest

from mandate_dce import (
    UNDEFINED,
    ConfigurationNotFound,
    EconomicParameters,
    MandateCalculator,
    ModelOptions,
    PolicyConfiguration,
    ValidationError,
)


def test_baseline_evaluation(calculator, baseline_config):
    output = calculator.evaluate(baseline_config)
    economics = calculator.economics

    expected_p = math.exp(1.904) / (math.exp(1.904) + math.exp(-0.572))
    assert output.choice_probability == pytest.approx(expected_p)
    assert output.choice_probability + output.opt_out_probability == 1.0
    assert output.utility_mandate == pytest.approx(1.904)
    assert output.utility_opt_out == pytest.approx(-0.572)
    assert output.welfare_equivalent_lives == 20.0
    assert output.national_lives_saved == pytest.approx(
        20.0 * economics.population_size / 100_000
    )
    assert output.total_cost == pytest.approx(
        economics.fixed_cost
        + economics.per_capita_cost * economics.population_size * expected_p
    )
    assert output.net_benefit == pytest.approx(output.monetized_benefit - output.total_cost)
    assert output.uptake_score == 41


def test_scope_all_evaluation(calculator, baseline_config):
    output = calculator.evaluate(baseline_config.with_changes(scope="all"))
    assert output.wts_adjustment == pytest.approx(4.421)
    assert output.welfare_equivalent_lives == pytest.approx(15.579)


def test_no_caching_between_configurations(calculator, baseline_config):
    first = calculator.evaluate(baseline_config)
    second = calculator.evaluate(baseline_config.with_changes(coverage=90))
    again = calculator.evaluate(baseline_config)
    assert second.choice_probability > first.choice_probability
    assert again == first


def test_economics_override(calculator, baseline_config):
    free = calculator.economics.with_updates(fixed_cost=0.0, per_capita_cost=0.0)
    output = calculator.evaluate(baseline_config, economics=free)
    assert output.benefit_cost_ratio is UNDEFINED
    # the calculator's own parameters are untouched
    assert calculator.evaluate(baseline_config).benefit_cost_ratio is not UNDEFINED


def test_evaluate_mapping(calculator):
    output = calculator.evaluate_mapping(
        {"country": "italy", "scenario": "mild", "scope": "all",
         "exemptions": ["religious"], "coverage": 70, "livesSaved": 15}
    )
    assert 0.0 < output.choice_probability < 1.0


def test_evaluate_mapping_rejects_invalid(calculator):
    with pytest.raises(ValidationError):
        calculator.evaluate_mapping({"coverage": 65})


def test_compare_returns_frame(calculator, baseline_config):
    configs = [baseline_config.with_changes(coverage=c) for c in (50, 70, 90)]
    frame = calculator.compare(configs)
    assert isinstance(frame, pd.DataFrame)
    assert len(frame) == 3
    assert list(frame["coverage"]) == [50, 70, 90]
    assert {"choice_probability", "net_benefit", "benefit_cost_ratio"} <= set(frame.columns)


@pytest.mark.parametrize("mode", ["mxl", "latent_class", "hybrid"])
def test_every_model_mode(store, wts_table, simple_economics, baseline_config, mode):
    calculator = MandateCalculator(
        store, wts_table, simple_economics, ModelOptions(mode=mode)
    )
    output = calculator.evaluate(baseline_config)
    assert 0.0 <= output.choice_probability <= 1.0
    assert output.uptake_score == 41


def test_missing_coefficients_surface(wts_table, simple_economics):
    from mandate_dce import CoefficientStore

    store = CoefficientStore({}, require_complete=False)
    calculator = MandateCalculator(store, wts_table, simple_economics)
    with pytest.raises(ConfigurationNotFound):
        calculator.evaluate(PolicyConfiguration())


def test_default_options(store, wts_table):
    calculator = MandateCalculator(
        store, wts_table, EconomicParameters(100_000, 1.0, 0.0, 1.0)
    )
    assert calculator.options == ModelOptions()
