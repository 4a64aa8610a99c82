"""
Model evaluation on labeled events.
"""

import logging
from typing import Dict, Iterable

import pandas as pd
from sklearn.metrics import (
    accuracy_score,
    classification_report,
    confusion_matrix,
    f1_score,
)

from classifier_engine.events.event import Event

from .maxent_model import GISModel

logger = logging.getLogger(__name__)


class ModelEvaluator:
    """Evaluate a trained model against labeled events."""

    def __init__(self, model: GISModel):
        self.model = model

    def evaluate(self, events: Iterable[Event], dataset_name: str = "test") -> Dict:
        """
        Evaluate model on events.

        Args:
            events: Labeled events
            dataset_name: Name of dataset (for logging)

        Returns:
            Dictionary with evaluation metrics
        """
        y_true = []
        y_pred = []
        for event in events:
            probabilities = self.model.eval(event.context, event.values)
            y_true.append(event.outcome)
            y_pred.append(self.model.get_best_outcome(probabilities))

        if not y_true:
            raise ValueError(f"No events to evaluate in {dataset_name} set")

        labels = sorted(set(self.model.outcome_labels) | set(y_true))

        metrics = {
            "accuracy": accuracy_score(y_true, y_pred),
            "f1_score": f1_score(y_true, y_pred, average="weighted", zero_division=0),
            "confusion_matrix": confusion_matrix(y_true, y_pred, labels=labels).tolist(),
            "labels": labels,
            "classification_report": classification_report(
                y_true, y_pred, labels=labels, output_dict=True, zero_division=0
            ),
            "total_events": len(y_true),
        }

        logger.info(
            f"Evaluated {len(y_true)} {dataset_name} events: "
            f"accuracy {metrics['accuracy']:.3f}, F1 {metrics['f1_score']:.3f}"
        )

        return metrics

    @staticmethod
    def outcome_distribution(events: Iterable[Event]) -> Dict:
        """
        Get distribution of outcomes.

        Args:
            events: Labeled events

        Returns:
            Dictionary with outcome counts and percentages
        """
        outcomes = pd.Series([event.outcome for event in events], dtype="object")
        counts = outcomes.value_counts()
        total = int(counts.sum())

        return {
            "total": total,
            "counts": {str(k): int(v) for k, v in counts.items()},
            "percentages": {
                str(k): float(v) / total * 100 if total > 0 else 0.0
                for k, v in counts.items()
            },
        }
