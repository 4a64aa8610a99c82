"""
Event trainer.

Validates the training parameters, indexes the event stream, enforces that
the indexed data can produce a model, delegates to a numeric trainer and
records the provenance of the run.
"""

import logging
from typing import Any, Dict, Iterable, Mapping, Optional, Union

from classifier_engine.events.event import Event
from classifier_engine.events.hash_sum import HashSumEventStream
from classifier_engine.events.indexers import DATA_INDEXER_VALUES, DATA_INDEXERS, DataIndexer, EventIndex
from shared.errors import ConfigurationError, InsufficientTrainingDataError

from .gis_trainer import GISTrainer
from .maxent_model import GISModel
from .numeric_trainer import NumericTrainer
from .parameters import (
    ALGORITHM_PARAM,
    CUTOFF_DEFAULT,
    EVENT_VALUE,
    MAXENT_VALUE,
    TRAINER_TYPE_PARAM,
    TRAINING_EVENTHASH_KEY,
    TrainingParameters,
)

logger = logging.getLogger(__name__)

# Registered numeric trainers by algorithm name
TRAINERS = {
    MAXENT_VALUE: GISTrainer,
}

ParametersLike = Union[TrainingParameters, Mapping[str, Any], None]


def _coerce_parameters(parameters: ParametersLike) -> TrainingParameters:
    if parameters is None:
        return TrainingParameters()
    if isinstance(parameters, TrainingParameters):
        return parameters.model_copy()
    return TrainingParameters.from_mapping(parameters)


def get_numeric_trainer(parameters: TrainingParameters) -> NumericTrainer:
    """
    Create the numeric trainer registered for the configured algorithm.

    Raises:
        ConfigurationError: If no trainer is registered for the algorithm
    """
    trainer_class = TRAINERS.get(parameters.algorithm)
    if trainer_class is None:
        raise ConfigurationError(f"Unknown training algorithm: {parameters.algorithm}")
    return trainer_class(parameters)


class EventTrainer:
    """
    Train maximum entropy models from event streams.

    The numeric optimisation is delegated to a NumericTrainer, either given
    explicitly or looked up from the ``algorithm`` parameter.
    """

    def __init__(
        self,
        parameters: ParametersLike = None,
        numeric_trainer: Optional[NumericTrainer] = None,
    ):
        """
        Initialize event trainer.

        Args:
            parameters: Training parameters (default parameters if None)
            numeric_trainer: Numeric trainer to delegate to (default from algorithm)
        """
        self.parameters = _coerce_parameters(parameters)
        self._numeric_trainer = numeric_trainer
        self.report: Dict[str, str] = {}

    @property
    def numeric_trainer(self) -> NumericTrainer:
        if self._numeric_trainer is None:
            self._numeric_trainer = get_numeric_trainer(self.parameters)
        return self._numeric_trainer

    def validate(self, parameters: ParametersLike = None):
        """
        Check the training parameters.

        Args:
            parameters: Parameters to check (default: this trainer's parameters)

        Raises:
            ConfigurationError: If a parameter is invalid
        """
        params = self.parameters if parameters is None else _coerce_parameters(parameters)

        if params.trainer_type != EVENT_VALUE:
            raise ConfigurationError(f"Unsupported trainer type: {params.trainer_type}")

        if self._numeric_trainer is None and params.algorithm not in TRAINERS:
            raise ConfigurationError(f"Unknown training algorithm: {params.algorithm}")

        if params.data_indexer not in DATA_INDEXER_VALUES:
            raise ConfigurationError(
                f"Unknown data indexer: {params.data_indexer} "
                f"(expected one of {', '.join(DATA_INDEXER_VALUES)})"
            )

        if params.iterations < 1:
            raise ConfigurationError(f"Iterations must be positive: {params.iterations}")

        if params.cutoff is not None and params.cutoff < 0:
            raise ConfigurationError(f"Cutoff must not be negative: {params.cutoff}")

    def build_index(self, events: Iterable[Event]) -> EventIndex:
        """
        Index the event stream with the configured data indexer.

        The cutoff defaults to 5 when it was not set; sorting and merging
        follow the numeric trainer. The stream is consumed once.
        """
        self.parameters.sort_and_merge = self.numeric_trainer.sort_and_merge

        # If the cutoff was set, don't overwrite the value
        if self.parameters.cutoff is None:
            self.parameters.cutoff = CUTOFF_DEFAULT

        indexer = self._create_data_indexer()
        return indexer.index(events)

    def _create_data_indexer(self) -> DataIndexer:
        indexer_class = DATA_INDEXERS.get(self.parameters.data_indexer)
        if indexer_class is None:
            raise ConfigurationError(f"Unknown data indexer: {self.parameters.data_indexer}")

        return indexer_class(
            cutoff=self.parameters.cutoff,
            sort=self.parameters.sort_and_merge,
            report=self.report,
        )

    def train_index(self, index: EventIndex) -> GISModel:
        """
        Train a model from indexed events.

        Raises:
            ConfigurationError: If the parameters are invalid
            InsufficientTrainingDataError: If the data has fewer than two outcomes
        """
        self.report = {}
        return self._train_index(index)

    def _train_index(self, index: EventIndex) -> GISModel:
        self.validate()

        if len(index.outcome_labels) <= 1:
            raise InsufficientTrainingDataError(
                "Training data must contain more than one outcome"
            )

        numeric_trainer = self.numeric_trainer
        model = numeric_trainer.train(index)

        self.report.update(numeric_trainer.report)
        self.report[ALGORITHM_PARAM] = numeric_trainer.algorithm or self.parameters.algorithm
        self.report[TRAINER_TYPE_PARAM] = EVENT_VALUE
        model.training_report.update(self.report)

        return model

    def train_events(self, events: Iterable[Event]) -> GISModel:
        """
        Train a model from an event stream.

        The corpus hash of the consumed events is recorded in the report.
        """
        self.validate()
        self.report = {}

        stream = HashSumEventStream(events)
        index = self.build_index(stream)

        self.report[TRAINING_EVENTHASH_KEY] = stream.hex_hash_sum()
        logger.info(f"Training event hash: {self.report[TRAINING_EVENTHASH_KEY]}")

        return self._train_index(index)

    def train(self, data: Union[EventIndex, Iterable[Event]]) -> GISModel:
        """Train from an EventIndex or from an event stream."""
        if isinstance(data, EventIndex):
            return self.train_index(data)
        return self.train_events(data)
