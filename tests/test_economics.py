"""
Tests for the cost-benefit aggregator.
"""

import math

import pytest

from mandate_dce import (
    UNDEFINED,
    ChoiceResult,
    EconomicParameters,
    ValidationError,
    Valuation,
    WelfareResult,
    benefit_cost_ratio,
    compute_outputs,
    is_undefined,
)


def _choice(probability: float) -> ChoiceResult:
    return ChoiceResult(
        probability=probability,
        opt_out_probability=1.0 - probability,
        utility_mandate=0.0,
        utility_opt_out=0.0,
    )


def _welfare(equivalent: float, base: float = None) -> WelfareResult:
    base = equivalent if base is None else base
    return WelfareResult(base_lives=base, adjustment=base - equivalent, equivalent_lives=equivalent)


def test_hand_computed_outputs(baseline_config, simple_economics):
    output = compute_outputs(baseline_config, _choice(0.5), _welfare(10.0, 20.0), simple_economics)
    assert output.national_lives_saved == pytest.approx(20.0)
    assert output.monetized_benefit == pytest.approx(20_000_000.0)
    assert output.total_cost == pytest.approx(1_001_000.0)
    assert output.net_benefit == pytest.approx(18_999_000.0)
    assert output.benefit_cost_ratio == pytest.approx(20_000_000.0 / 1_001_000.0)
    assert output.wts_adjustment == pytest.approx(10.0)
    assert output.base_lives_saved == 20.0
    assert output.total_qaly is None


def test_cost_scales_with_compliance(baseline_config, simple_economics):
    low = compute_outputs(baseline_config, _choice(0.2), _welfare(10.0), simple_economics)
    high = compute_outputs(baseline_config, _choice(0.8), _welfare(10.0), simple_economics)
    assert high.total_cost - low.total_cost == pytest.approx(10.0 * 200_000 * 0.6)
    assert high.monetized_benefit == low.monetized_benefit


def test_qaly_valuation(baseline_config):
    params = EconomicParameters(
        population_size=200_000,
        value_per_life=0.0,
        fixed_cost=500.0,
        per_capita_cost=0.0,
        valuation=Valuation.QALY,
        qaly_per_life=10.0,
        morbidity_qaly_gain=5.0,
        value_per_qaly=100.0,
    )
    output = compute_outputs(baseline_config, _choice(0.5), _welfare(10.0), params)
    assert output.total_qaly == pytest.approx(205.0)
    assert output.monetized_benefit == pytest.approx(20_500.0)
    assert output.benefit_cost_ratio == pytest.approx(41.0)


def test_vaccine_effectiveness_scales_lives(baseline_config, simple_economics):
    params = simple_economics.with_updates(vaccine_effectiveness=0.5)
    output = compute_outputs(baseline_config, _choice(0.5), _welfare(10.0), params)
    assert output.national_lives_saved == pytest.approx(10.0)


class TestUndefinedRatio:

    def test_zero_cost_gives_undefined(self, baseline_config, simple_economics):
        params = simple_economics.with_updates(fixed_cost=0.0, per_capita_cost=0.0)
        output = compute_outputs(baseline_config, _choice(0.7), _welfare(10.0), params)
        assert output.total_cost == 0.0
        assert output.benefit_cost_ratio is UNDEFINED
        assert is_undefined(output.benefit_cost_ratio)
        assert not output.has_benefit_cost_ratio
        assert output.to_flat_dict()["benefit_cost_ratio"] is None

    def test_zero_support_and_no_fixed_cost(self, baseline_config, simple_economics):
        params = simple_economics.with_updates(fixed_cost=0.0)
        output = compute_outputs(baseline_config, _choice(0.0), _welfare(10.0), params)
        assert output.benefit_cost_ratio is UNDEFINED

    def test_undefined_is_distinct(self):
        ratio = benefit_cost_ratio(100.0, 0.0)
        assert ratio is UNDEFINED
        assert ratio != 0
        assert not isinstance(ratio, float)
        assert str(ratio) == "—"
        assert not ratio

    def test_positive_cost_is_defined(self):
        ratio = benefit_cost_ratio(0.0, 10.0)
        assert ratio == 0.0
        assert ratio is not UNDEFINED

    def test_undefined_survives_copy(self):
        import copy
        import pickle

        assert copy.deepcopy(UNDEFINED) is UNDEFINED
        assert pickle.loads(pickle.dumps(UNDEFINED)) is UNDEFINED


class TestValidation:

    @pytest.mark.parametrize(
        "field, value",
        [
            ("population_size", -1),
            ("population_size", float("nan")),
            ("fixed_cost", float("inf")),
            ("per_capita_cost", -5.0),
            ("value_per_life", float("-inf")),
            ("vaccine_effectiveness", 1.5),
            ("value_per_qaly", "lots"),
        ],
    )
    def test_bad_parameters_rejected(self, simple_economics, field, value):
        with pytest.raises(ValidationError):
            simple_economics.with_updates(**{field: value})

    def test_unknown_valuation(self):
        with pytest.raises(ValidationError):
            EconomicParameters(1, 1, 1, 1, valuation="willingness")

    def test_from_mapping_rejects_unknown_keys(self):
        with pytest.raises(ValidationError):
            EconomicParameters.from_mapping(
                {"population_size": 1, "value_per_life": 1, "fixed_cost": 0,
                 "per_capita_cost": 0, "discount_rate": 0.03}
            )

    def test_from_mapping_rejects_missing_keys(self):
        with pytest.raises(ValidationError):
            EconomicParameters.from_mapping({"population_size": 1})

    @pytest.mark.parametrize("probability", [-0.1, 1.1, float("nan")])
    def test_bad_probability_rejected(self, baseline_config, simple_economics, probability):
        with pytest.raises(ValidationError):
            compute_outputs(baseline_config, _choice(probability), _welfare(10.0), simple_economics)

    def test_non_finite_lives_rejected(self, baseline_config, simple_economics):
        with pytest.raises(ValidationError):
            compute_outputs(baseline_config, _choice(0.5), _welfare(math.inf), simple_economics)
