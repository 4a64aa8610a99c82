"""
Interface of the numeric trainers driven by the event trainer.
"""

from abc import ABC, abstractmethod
from typing import Dict, Optional

from classifier_engine.events.indexers import EventIndex

from .maxent_model import GISModel
from .parameters import TrainingParameters


class NumericTrainer(ABC):
    """
    Computes model parameters from indexed events.

    Implementations fill ``report`` with diagnostics of their last run.
    """

    algorithm = ""

    def __init__(self, parameters: Optional[TrainingParameters] = None):
        self.parameters = parameters or TrainingParameters()
        self.report: Dict[str, str] = {}

    @property
    @abstractmethod
    def sort_and_merge(self) -> bool:
        """Whether the trainer wants sorted, duplicate-merged events."""

    @abstractmethod
    def train(self, index: EventIndex) -> GISModel:
        """Train a model from the indexed events."""
