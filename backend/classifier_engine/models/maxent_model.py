"""
Trained maximum entropy model.
"""

from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, Mapping, Optional, Sequence, Tuple

import numpy as np

GIS_MODEL_TYPE = "GIS"


@dataclass(frozen=True)
class Predicate:
    """
    Parameters of one predicate.

    ``params[i]`` is the weight of the predicate for outcome ``outcomes[i]``.
    """

    outcomes: Tuple[int, ...]
    params: Tuple[float, ...]

    def __post_init__(self):
        object.__setattr__(self, "outcomes", tuple(int(o) for o in self.outcomes))
        object.__setattr__(self, "params", tuple(float(p) for p in self.params))
        if len(self.outcomes) != len(self.params):
            raise ValueError(
                f"Predicate has {len(self.outcomes)} outcomes but {len(self.params)} parameters"
            )


class GISModel:
    """
    A maximum entropy model with GIS-format parameters.

    The parameter table is fixed at construction. ``training_report`` carries
    provenance of the training run and is not part of the persisted model.
    """

    model_type = GIS_MODEL_TYPE

    def __init__(
        self,
        outcome_labels: Sequence[str],
        predicates: Mapping[str, Predicate],
        training_report: Optional[Dict[str, str]] = None,
    ):
        """
        Initialize model.

        Args:
            outcome_labels: Outcome names; the position is the outcome index
            predicates: Predicate name to parameters
            training_report: Training provenance (algorithm, corpus hash, ...)
        """
        outcome_labels = tuple(outcome_labels)
        if len(outcome_labels) <= 1:
            raise ValueError("A model needs more than one outcome")
        if len(set(outcome_labels)) != len(outcome_labels):
            raise ValueError("Outcome labels must be unique")

        table: Dict[str, Predicate] = {}
        for name, predicate in predicates.items():
            if not isinstance(predicate, Predicate):
                predicate = Predicate(*predicate)
            for outcome in predicate.outcomes:
                if not 0 <= outcome < len(outcome_labels):
                    raise ValueError(f"Predicate {name} has unknown outcome index {outcome}")
            table[name] = predicate

        self._outcome_labels = outcome_labels
        self._outcome_index = {label: i for i, label in enumerate(outcome_labels)}
        self._predicates = MappingProxyType(table)
        self.training_report: Dict[str, str] = dict(training_report or {})

    @property
    def outcome_labels(self) -> Tuple[str, ...]:
        return self._outcome_labels

    @property
    def predicates(self) -> Mapping[str, Predicate]:
        return self._predicates

    @property
    def num_outcomes(self) -> int:
        return len(self._outcome_labels)

    def eval(
        self, context: Sequence[str], values: Optional[Sequence[float]] = None
    ) -> np.ndarray:
        """
        Probability of every outcome given the context.

        Unknown predicates are ignored.

        Args:
            context: Predicate names
            values: Optional real values aligned with the context

        Returns:
            Probabilities indexed by outcome index
        """
        scores = np.zeros(self.num_outcomes)
        for ci, name in enumerate(context):
            predicate = self._predicates.get(name)
            if predicate is None or not predicate.outcomes:
                continue
            value = 1.0 if values is None else values[ci]
            scores[list(predicate.outcomes)] += np.asarray(predicate.params) * value

        probabilities = np.exp(scores - scores.max())
        return probabilities / probabilities.sum()

    def get_best_outcome(self, probabilities: Sequence[float]) -> str:
        return self._outcome_labels[int(np.argmax(probabilities))]

    def get_outcome(self, index: int) -> str:
        return self._outcome_labels[index]

    def get_index(self, outcome: str) -> int:
        """Index of an outcome label, or -1 if the model does not know it."""
        return self._outcome_index.get(outcome, -1)

    def get_all_outcomes(self, probabilities: Sequence[float]) -> str:
        return "  ".join(
            f"{label}[{p:.4f}]" for label, p in zip(self._outcome_labels, probabilities)
        )

    def __eq__(self, other) -> bool:
        if not isinstance(other, GISModel):
            return NotImplemented
        return (
            self._outcome_labels == other._outcome_labels
            and dict(self._predicates) == dict(other._predicates)
        )

    def __hash__(self):
        return hash((self._outcome_labels, len(self._predicates)))

    def __repr__(self) -> str:
        return (
            f"GISModel(outcomes={len(self._outcome_labels)}, "
            f"predicates={len(self._predicates)})"
        )
