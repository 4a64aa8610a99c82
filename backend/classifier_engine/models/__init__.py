"""
Maximum entropy model training, persistence and inference.

Provides the event trainer, the GIS numeric trainer, the GIS model codec,
model storage, evaluation and prediction.
"""

from .evaluator import ModelEvaluator
from .gis_trainer import GISTrainer
from .maxent_model import GISModel, Predicate
from .model_reader import BinaryGISModelReader, PlainTextGISModelReader, read_model
from .model_store import ModelStore
from .model_writer import (
    BinaryGISModelWriter,
    ComparablePredicate,
    CompressionGroup,
    GISModelWriter,
    PlainTextGISModelWriter,
    compress_outcomes,
    sort_and_group,
    sort_values,
    write_model,
)
from .numeric_trainer import NumericTrainer
from .parameters import TrainingParameters
from .predictor import Predictor
from .trainer import EventTrainer, get_numeric_trainer

__all__ = [
    "BinaryGISModelReader",
    "BinaryGISModelWriter",
    "ComparablePredicate",
    "CompressionGroup",
    "EventTrainer",
    "GISModel",
    "GISModelWriter",
    "GISTrainer",
    "ModelEvaluator",
    "ModelStore",
    "NumericTrainer",
    "PlainTextGISModelReader",
    "PlainTextGISModelWriter",
    "Predicate",
    "Predictor",
    "TrainingParameters",
    "compress_outcomes",
    "get_numeric_trainer",
    "read_model",
    "sort_and_group",
    "sort_values",
    "write_model",
]
