"""
Prediction with stored models.

Loads the latest stored model and classifies contexts with confidence scoring.
"""

import logging
from typing import Dict, Optional, Sequence

from shared.config import settings

from .model_store import ModelStore

logger = logging.getLogger(__name__)


class Predictor:
    """
    Classify contexts with the latest stored model of a name and version.
    """

    def __init__(
        self,
        name: str,
        model_version: str = "v1",
        confidence_threshold: Optional[float] = None,
        store: Optional[ModelStore] = None,
    ):
        """
        Initialize predictor.

        Args:
            name: Stored model name
            model_version: Model version to load (default "v1")
            confidence_threshold: Min confidence for predictions (default from settings)
            store: Model store (default store from settings)
        """
        self.name = name
        self.model_version = model_version
        self.confidence_threshold = (
            confidence_threshold
            if confidence_threshold is not None
            else settings.prediction_confidence_threshold
        )

        self.model_store = store or ModelStore()
        model_path = self.model_store.get_latest_model(name, model_version)

        if not model_path:
            raise ValueError(f"No model found for {name} version {model_version}")

        self.model, self.metadata = self.model_store.load(model_path)

        logger.info(
            f"Loaded model {name} (version {model_version}, "
            f"{self.model.num_outcomes} outcomes, {len(self.model.predicates)} predicates)"
        )

    def predict(
        self, context: Sequence[str], values: Optional[Sequence[float]] = None
    ) -> Dict:
        """
        Classify a context.

        Args:
            context: Predicate names
            values: Optional real values aligned with the context

        Returns:
            Dictionary with prediction results
        """
        probabilities = self.model.eval(context, values)
        outcome = self.model.get_best_outcome(probabilities)
        confidence = float(probabilities.max())

        result = {
            "outcome": outcome,
            "confidence": confidence,
            "probabilities": {
                label: float(p) for label, p in zip(self.model.outcome_labels, probabilities)
            },
            "meets_threshold": confidence >= self.confidence_threshold,
        }

        logger.debug(
            f"Prediction: {outcome} (confidence={confidence:.3f}, "
            f"threshold={self.confidence_threshold})"
        )

        return result
