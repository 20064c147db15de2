"""
In-memory scenario archive.

Saved scenarios are immutable snapshots of a configuration and its evaluated
outputs, kept in insertion order for comparison and export.
"""

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Tuple, Union

import pandas as pd

from utils.logging import log_call

from .economics import EvaluationOutput
from .errors import UNDEFINED, ConfigurationNotFound, ValidationError
from .policy import PolicyConfiguration

EXPORT_COLUMNS: Tuple[str, ...] = (
    "name",
    "country",
    "scenario",
    "scope",
    "exemptions",
    "coverage",
    "livesSaved",
    "equivalentLives",
    "supportProbability",
    "benefitCostRatio",
    "netBenefit",
    "notes",
)


@dataclass(frozen=True)
class ScenarioRecord:
    name: str
    configuration: PolicyConfiguration
    output: EvaluationOutput
    notes: str = ""
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @log_call
    def to_row(self) -> Dict[str, Any]:
        """Flatten to the fixed export columns."""
        ratio = self.output.benefit_cost_ratio
        return {
            "name": self.name,
            "country": self.configuration.country.value,
            "scenario": self.configuration.scenario.value,
            "scope": self.configuration.scope.value,
            "exemptions": self.configuration.exemptions.value,
            "coverage": self.configuration.coverage,
            "livesSaved": self.configuration.lives_saved,
            "equivalentLives": self.output.welfare_equivalent_lives,
            "supportProbability": self.output.choice_probability,
            "benefitCostRatio": None if ratio is UNDEFINED else ratio,
            "netBenefit": self.output.net_benefit,
            "notes": self.notes,
        }


class ScenarioArchive:
    """Ordered, append-only collection of saved scenarios."""

    def __init__(self) -> None:
        self._records: List[ScenarioRecord] = []

    @log_call
    def save(
        self,
        name: str,
        configuration: PolicyConfiguration,
        output: EvaluationOutput,
        notes: str = "",
        created_at: Optional[datetime] = None,
    ) -> ScenarioRecord:
        """Append a snapshot and return it."""
        if not isinstance(name, str) or not name.strip():
            raise ValidationError("Scenario name must be a non-empty string")
        record = ScenarioRecord(
            name=name.strip(),
            configuration=configuration,
            output=output,
            notes=notes or "",
            created_at=created_at or datetime.now(timezone.utc),
        )
        self._records.append(record)
        return record

    @property
    @log_call
    def records(self) -> Tuple[ScenarioRecord, ...]:
        return tuple(self._records)

    @log_call
    def get(self, name: str) -> ScenarioRecord:
        """Most recently saved record called ``name``."""
        for record in reversed(self._records):
            if record.name == name:
                return record
        raise ConfigurationNotFound(f"No saved scenario named '{name}'")

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[ScenarioRecord]:
        return iter(tuple(self._records))

    @log_call
    def to_dataframe(self) -> pd.DataFrame:
        return pd.DataFrame(
            [record.to_row() for record in self._records], columns=list(EXPORT_COLUMNS)
        )

    @log_call
    def export_csv(self, path: Union[str, Path]) -> Path:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        self.to_dataframe().to_csv(path, index=False)
        return path

    @log_call
    def export_json(self, path: Union[str, Path]) -> Path:
        """Write every record with its full output and timestamp."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        payload = [
            {
                **record.to_row(),
                "createdAt": record.created_at.isoformat(),
                "configuration": record.configuration.to_dict(),
                "output": record.output.to_flat_dict(),
            }
            for record in self._records
        ]
        with open(path, "w") as f:
            json.dump(payload, f, indent=2)
        return path
