"""
Training parameters.

Parameters can be given as keyword arguments, as a mapping using the classic
property names (``Algorithm``, ``Cutoff``, ``DataIndexer``, ...) or as a
``key=value`` properties file.
"""

from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from classifier_engine.events.indexers import ONE_PASS_VALUE
from shared.errors import ConfigurationError

MAXENT_VALUE = "MAXENT"
EVENT_VALUE = "Event"

CUTOFF_DEFAULT = 5
ITERATIONS_DEFAULT = 100

# Report keys
ALGORITHM_PARAM = "Algorithm"
TRAINER_TYPE_PARAM = "TrainerType"
TRAINING_EVENTHASH_KEY = "Training-Eventhash"


class TrainingParameters(BaseModel):
    """
    Parameters of a training run.

    Keys without a declared field are kept as-is; numeric trainers read their
    own options from them with ``get``.
    """

    model_config = ConfigDict(
        populate_by_name=True,
        validate_assignment=True,
        extra="allow",
    )

    algorithm: str = Field(default=MAXENT_VALUE, alias="Algorithm")
    trainer_type: str = Field(default=EVENT_VALUE, alias="TrainerType")
    iterations: int = Field(default=ITERATIONS_DEFAULT, alias="Iterations")
    cutoff: Optional[int] = Field(default=None, alias="Cutoff")
    data_indexer: str = Field(default=ONE_PASS_VALUE, alias="DataIndexer")
    sort_and_merge: Optional[bool] = Field(default=None, alias="sort")
    smoothing: bool = Field(default=False, alias="Smoothing")
    smoothing_observation: float = Field(default=0.1, alias="SmoothingObservation")
    ll_threshold: float = Field(default=0.0001, alias="LLThreshold")

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any]) -> "TrainingParameters":
        """
        Build parameters from a mapping of property names or field names.

        Raises:
            ConfigurationError: If a value cannot be converted
        """
        try:
            return cls.model_validate(dict(values))
        except ValidationError as e:
            raise ConfigurationError(f"Invalid training parameters: {e}") from e

    @classmethod
    def from_properties_file(cls, path: Union[str, Path]) -> "TrainingParameters":
        """
        Load parameters from a ``key=value`` properties file.

        Lines starting with ``#`` or ``!`` are comments.
        """
        values: Dict[str, str] = {}
        with open(path, "r", encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                if not line or line[0] in "#!":
                    continue
                key, sep, value = line.partition("=")
                if not sep:
                    raise ConfigurationError(f"Invalid parameter line: {line}")
                values[key.strip()] = value.strip()

        return cls.from_mapping(values)

    @property
    def trainer_options(self) -> Dict[str, Any]:
        """Parameters that are not declared fields, by their given key."""
        return dict(self.model_extra or {})

    def get(self, key: str, default: Any = None) -> Any:
        """Value of an undeclared parameter, e.g. ``Threads``."""
        return self.trainer_options.get(key, default)

    def to_properties(self) -> Dict[str, str]:
        """Set parameters as property names and string values."""
        return {
            key: str(value).lower() if isinstance(value, bool) else str(value)
            for key, value in self.model_dump(by_alias=True, exclude_none=True).items()
        }
