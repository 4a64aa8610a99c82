"""
Training service.

Reads training data, trains a model, evaluates it and stores it.
"""

import logging
from pathlib import Path
from typing import Dict, Iterable, Optional, Union

from classifier_engine.events.document import DocumentCategorizerEventStream, read_document_samples
from classifier_engine.events.event import Event, EventFileStream
from classifier_engine.models.evaluator import ModelEvaluator
from classifier_engine.models.maxent_model import GISModel
from classifier_engine.models.model_store import ModelStore
from classifier_engine.models.parameters import TrainingParameters
from classifier_engine.models.trainer import EventTrainer
from shared.config import TRAINING_DATA_FORMATS, settings

logger = logging.getLogger(__name__)


def load_events(path: Union[str, Path], data_format: str = "events") -> Iterable[Event]:
    """
    Event stream of a training data file.

    Args:
        path: Training data file
        data_format: "events", "real_events" or "doccat"

    Returns:
        Re-iterable event stream
    """
    if data_format == "events":
        return EventFileStream(path)
    if data_format == "real_events":
        return EventFileStream(path, real_valued=True)
    if data_format == "doccat":
        return _DocumentEvents(path)
    raise ValueError(
        f"Unknown training data format: {data_format} "
        f"(expected one of {', '.join(TRAINING_DATA_FORMATS)})"
    )


class _DocumentEvents:
    """Re-iterable events of a document sample file."""

    def __init__(self, path: Union[str, Path]):
        self.path = path

    def __iter__(self):
        return iter(DocumentCategorizerEventStream(read_document_samples(self.path)))


class TrainingService:
    """
    Train models from training data files and store them.
    """

    def __init__(
        self,
        parameters: Optional[TrainingParameters] = None,
        store: Optional[ModelStore] = None,
        evaluate: Optional[bool] = None,
    ):
        """
        Initialize training service.

        Args:
            parameters: Training parameters (default from settings)
            store: Model store (default store from settings)
            evaluate: Evaluate on the training data (default from settings)
        """
        self.parameters = parameters or TrainingParameters(
            algorithm=settings.training_algorithm,
            iterations=settings.training_iterations,
            cutoff=settings.training_cutoff,
            data_indexer=settings.training_data_indexer,
        )
        self.store = store or ModelStore()
        self.evaluate = settings.training_evaluate if evaluate is None else evaluate

        self.model: Optional[GISModel] = None
        self.metrics: Dict = {}

    def run(
        self,
        data_path: Union[str, Path],
        data_format: str = "events",
        name: Optional[str] = None,
        version: Optional[str] = None,
    ) -> str:
        """
        Train, evaluate and store a model.

        Args:
            data_path: Training data file
            data_format: "events", "real_events" or "doccat"
            name: Stored model name (default from settings)
            version: Model version (default from settings)

        Returns:
            Path to saved model file
        """
        name = name or settings.model_name
        version = version or settings.model_version
        events = load_events(data_path, data_format)

        logger.info(f"Training {name} ({version}) from {data_path} [{data_format}]")

        trainer = EventTrainer(self.parameters)
        self.model = trainer.train_events(iter(events))

        metadata: Dict = {
            "training_data": str(data_path),
            "training_data_format": data_format,
            "parameters": trainer.parameters.to_properties(),
        }

        if self.evaluate:
            evaluator = ModelEvaluator(self.model)
            self.metrics = {
                "train": evaluator.evaluate(events, "train"),
                "outcome_distribution": evaluator.outcome_distribution(events),
            }
            metadata["metrics"] = self.metrics

        model_path = self.store.save(self.model, name, version, metadata)
        logger.info(f"Training complete: {model_path}")

        return model_path
