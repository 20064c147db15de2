"""
Tests for the scenario archive and export.
"""

import json
from dataclasses import FrozenInstanceError
from datetime import datetime, timezone

import pandas as pd
import pytest

from mandate_dce import (
    EXPORT_COLUMNS,
    UNDEFINED,
    ConfigurationNotFound,
    ScenarioArchive,
    ValidationError,
)


@pytest.fixture
def archive(calculator, baseline_config):
    archive = ScenarioArchive()
    for name, config in [
        ("baseline", baseline_config),
        ("all_occupations", baseline_config.with_changes(scope="all")),
        ("high_coverage", baseline_config.with_changes(coverage=90)),
    ]:
        archive.save(name, config, calculator.evaluate(config), notes=f"{name} notes")
    return archive


def test_round_trip_has_no_drift(calculator, baseline_config):
    archive = ScenarioArchive()
    output = calculator.evaluate(baseline_config)
    archive.save("baseline", baseline_config, output)

    record = archive.get("baseline")
    assert record.output == output
    assert record.output.to_flat_dict() == output.to_flat_dict()
    assert record.configuration == baseline_config

    row = record.to_row()
    assert row["supportProbability"] == output.choice_probability
    assert row["equivalentLives"] == output.welfare_equivalent_lives
    assert row["netBenefit"] == output.net_benefit
    assert row["benefitCostRatio"] == output.benefit_cost_ratio


def test_insertion_order(archive):
    assert [r.name for r in archive] == ["baseline", "all_occupations", "high_coverage"]
    assert len(archive) == 3
    assert [r.name for r in archive.records] == ["baseline", "all_occupations", "high_coverage"]


def test_records_are_immutable(archive):
    record = archive.records[0]
    with pytest.raises(FrozenInstanceError):
        record.name = "renamed"
    assert isinstance(archive.records, tuple)


def test_created_at_is_recorded(calculator, baseline_config):
    archive = ScenarioArchive()
    stamp = datetime(2024, 3, 1, tzinfo=timezone.utc)
    record = archive.save("x", baseline_config, calculator.evaluate(baseline_config), created_at=stamp)
    assert record.created_at == stamp
    default = archive.save("y", baseline_config, calculator.evaluate(baseline_config))
    assert default.created_at.tzinfo is not None


def test_empty_name_rejected(calculator, baseline_config):
    with pytest.raises(ValidationError):
        ScenarioArchive().save("  ", baseline_config, calculator.evaluate(baseline_config))


def test_unknown_name(archive):
    with pytest.raises(ConfigurationNotFound):
        archive.get("missing")


def test_dataframe_columns(archive):
    frame = archive.to_dataframe()
    assert tuple(frame.columns) == EXPORT_COLUMNS
    assert list(frame["name"]) == ["baseline", "all_occupations", "high_coverage"]
    assert frame.loc[1, "scope"] == "all"
    assert frame.loc[1, "equivalentLives"] == pytest.approx(15.579)


def test_empty_archive_frame():
    frame = ScenarioArchive().to_dataframe()
    assert frame.empty
    assert tuple(frame.columns) == EXPORT_COLUMNS


def test_export_csv(archive, tmp_path):
    path = archive.export_csv(tmp_path / "out" / "scenarios.csv")
    frame = pd.read_csv(path)
    assert tuple(frame.columns) == EXPORT_COLUMNS
    assert len(frame) == 3


def test_export_json_with_undefined_ratio(calculator, baseline_config, tmp_path):
    archive = ScenarioArchive()
    free = calculator.economics.with_updates(fixed_cost=0.0, per_capita_cost=0.0)
    output = calculator.evaluate(baseline_config, economics=free)
    assert output.benefit_cost_ratio is UNDEFINED
    archive.save("free", baseline_config, output)

    path = archive.export_json(tmp_path / "scenarios.json")
    with open(path) as f:
        payload = json.load(f)
    assert payload[0]["benefitCostRatio"] is None
    assert payload[0]["output"]["benefit_cost_ratio"] is None
    assert payload[0]["configuration"]["country"] == "australia"
    assert "createdAt" in payload[0]
