"""
Shared test fixtures.

The Hydra configuration is composed once per session and the calculator built
from it is reused across test modules.
"""

import os
import sys

import pytest

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from config import build_calculator, load_config  # noqa: E402
from mandate_dce import (  # noqa: E402
    CoefficientSet,
    EconomicParameters,
    PolicyConfiguration,
)
from mandate_dce.policy import AttributeLevel  # noqa: E402


@pytest.fixture(scope="session")
def default_cfg():
    """Default Hydra configuration."""
    return load_config()


@pytest.fixture(scope="session")
def calculator(default_cfg):
    """Calculator built from the default configuration (mixed logit)."""
    return build_calculator(default_cfg)


@pytest.fixture(scope="session")
def store(calculator):
    return calculator.store


@pytest.fixture(scope="session")
def wts_table(calculator):
    return calculator.wts_table


@pytest.fixture
def baseline_config():
    """Australia, mild outbreak, reference levels, 20 lives per 100k."""
    return PolicyConfiguration(
        country="australia",
        scenario="mild",
        scope="highrisk",
        exemptions="medical",
        coverage=50,
        lives_saved=20,
    )


@pytest.fixture
def australia_mild_coefficients():
    """The Australia/mild mixed logit estimates, written out by hand."""
    return CoefficientSet(
        mandate_constant=0.464,
        opt_out_constant=-0.572,
        lives_coefficient=0.072,
        attributes={
            AttributeLevel.SCOPE_ALL: -0.319,
            AttributeLevel.EXEMPTION_RELIGIOUS: -0.157,
            AttributeLevel.EXEMPTION_PERSONAL: -0.267,
            AttributeLevel.COVERAGE_70: 0.171,
            AttributeLevel.COVERAGE_90: 0.158,
        },
        standard_errors={"lives": 0.004, "scope_all": 0.041},
    )


@pytest.fixture
def simple_economics():
    """Round-number economic assumptions for hand-checked results."""
    return EconomicParameters(
        population_size=200_000,
        value_per_life=1_000_000.0,
        fixed_cost=1_000.0,
        per_capita_cost=10.0,
    )
