"""
Evaluation pipeline.

``MandateCalculator`` wires the coefficient store, WTS table, economic
assumptions and model options together and evaluates policy configurations.
Nothing is cached: every call recomputes from its inputs.
"""

import logging
from typing import Any, Iterable, Mapping, Optional

import pandas as pd

from utils.logging import log_call

from .choice import ModelOptions, attribute_utility, predict_support, uptake_score
from .coefficients import CoefficientStore
from .economics import EconomicParameters, EvaluationOutput, compute_outputs
from .policy import PolicyConfiguration
from .welfare import compute_welfare_equivalent_lives
from .wts import WTSTable

logger = logging.getLogger(__name__)


class MandateCalculator:
    """
    Evaluate vaccine mandate configurations.

    Parameters
    ----------
    store : CoefficientStore
        Preference coefficients
    wts_table : WTSTable
        Willingness-to-save-lives values
    economics : EconomicParameters
        Population and monetary assumptions
    options : ModelOptions, optional
        Choice model selection and utility convention
    """

    def __init__(
        self,
        store: CoefficientStore,
        wts_table: WTSTable,
        economics: EconomicParameters,
        options: Optional[ModelOptions] = None,
    ):
        self.store = store
        self.wts_table = wts_table
        self.economics = economics
        self.options = options or ModelOptions()

    @log_call
    def evaluate(
        self,
        config: PolicyConfiguration,
        economics: Optional[EconomicParameters] = None,
    ) -> EvaluationOutput:
        """
        Evaluate one configuration.

        ``economics`` overrides the calculator's economic parameters for this
        call only (used by the sensitivity analysis).
        """
        choice = predict_support(config, self.store, self.options)
        welfare = compute_welfare_equivalent_lives(config, self.wts_table)
        # display index on the mixed logit attribute utility in every mode
        uptake = uptake_score(
            attribute_utility(config, self.store.get(config.country, config.scenario)),
            self.options.uptake_min_utility,
            self.options.uptake_max_utility,
        )
        output = compute_outputs(
            config, choice, welfare, economics or self.economics, uptake=uptake
        )
        logger.debug(
            "Evaluated %s/%s: support=%.3f equivalent_lives=%.3f net_benefit=%.0f",
            config.country.value,
            config.scenario.value,
            output.choice_probability,
            output.welfare_equivalent_lives,
            output.net_benefit,
        )
        return output

    @log_call
    def evaluate_mapping(self, state: Mapping[str, Any]) -> EvaluationOutput:
        """Validate a form-state mapping and evaluate it."""
        return self.evaluate(PolicyConfiguration.from_mapping(state))

    @log_call
    def compare(self, configs: Iterable[PolicyConfiguration]) -> pd.DataFrame:
        """Evaluate several configurations into one row each."""
        rows = []
        for config in configs:
            row = config.to_dict()
            row.update(self.evaluate(config).to_flat_dict())
            rows.append(row)
        return pd.DataFrame(rows)
