"""
Generalized Iterative Scaling trainer for maximum entropy models.
"""

import logging
import time
from itertools import chain

import numpy as np
from scipy import sparse

from classifier_engine.events.indexers import EventIndex

from .maxent_model import GISModel, Predicate
from .numeric_trainer import NumericTrainer
from .parameters import MAXENT_VALUE

logger = logging.getLogger(__name__)

# Floor for expectations and probabilities before taking logs
_TINY = np.finfo(np.float64).tiny

# Report keys
ITERATIONS_KEY = "Iterations"
LOG_LIKELIHOOD_KEY = "LogLikelihood"


class GISTrainer(NumericTrainer):
    """
    Train a maximum entropy model with Generalized Iterative Scaling.

    Every predicate gets one parameter per outcome it was observed with
    (per outcome, when smoothing is on). Training stops after the configured
    number of iterations or once the log-likelihood changes by less than the
    configured threshold.
    """

    algorithm = MAXENT_VALUE

    @property
    def sort_and_merge(self) -> bool:
        return True

    def train(self, index: EventIndex) -> GISModel:
        """
        Train model.

        Args:
            index: Indexed training events

        Returns:
            Trained model
        """
        start = time.time()
        n_events = index.num_events
        n_preds = index.num_predicates
        n_outcomes = index.num_outcomes

        logger.info(
            f"Training GIS model: {n_events} unique events, {n_outcomes} outcomes, "
            f"{n_preds} predicates"
        )

        features = self._feature_matrix(index)
        weights = np.asarray(index.num_times_seen, dtype=np.float64)
        outcomes = np.asarray(index.outcome_list, dtype=np.int64)
        rows = np.arange(n_events)

        targets = np.zeros((n_events, n_outcomes))
        targets[rows, outcomes] = weights
        observed = np.asarray(features.T @ targets)

        active = observed > 0
        if self.parameters.smoothing:
            observed = np.where(active, observed, self.parameters.smoothing_observation)
            active = np.ones_like(active)

        log_observed = np.zeros_like(observed)
        np.log(observed, out=log_observed, where=active)

        # Largest feature mass of any event
        correction_constant = float(np.asarray(features.sum(axis=1)).max()) if n_events else 1.0
        if correction_constant <= 0:
            correction_constant = 1.0

        params = np.zeros((n_preds, n_outcomes))
        previous = None
        log_likelihood = 0.0
        iteration = 0

        for iteration in range(1, self.parameters.iterations + 1):
            probabilities = self._probabilities(features, params)
            log_likelihood = float(
                np.sum(weights * np.log(np.maximum(probabilities[rows, outcomes], _TINY)))
            )

            model_expects = np.asarray(features.T @ (probabilities * weights[:, None]))
            log_model = np.log(np.maximum(model_expects, _TINY))
            params += np.where(active, (log_observed - log_model) / correction_constant, 0.0)

            logger.debug(f"Iteration {iteration}: log-likelihood {log_likelihood:.6f}")

            if previous is not None:
                if log_likelihood < previous:
                    logger.warning(f"Model diverging at iteration {iteration}")
                if abs(log_likelihood - previous) < self.parameters.ll_threshold:
                    break
            previous = log_likelihood

        predicates = {}
        for pi, name in enumerate(index.pred_labels):
            active_outcomes = np.flatnonzero(active[pi])
            predicates[name] = Predicate(
                tuple(active_outcomes), tuple(params[pi, active_outcomes])
            )

        self.report = {
            ITERATIONS_KEY: str(iteration),
            LOG_LIKELIHOOD_KEY: f"{log_likelihood:.6f}",
        }

        logger.info(
            f"Training complete after {iteration} iterations in {time.time() - start:.2f} s. "
            f"Log-likelihood: {log_likelihood:.6f}"
        )

        return GISModel(index.outcome_labels, predicates)

    @staticmethod
    def _feature_matrix(index: EventIndex) -> sparse.csr_matrix:
        """Event x predicate matrix of feature values."""
        lengths = [len(context) for context in index.contexts]
        total = sum(lengths)

        rows = np.repeat(np.arange(index.num_events), lengths)
        cols = np.fromiter(chain.from_iterable(index.contexts), dtype=np.int64, count=total)
        if index.values is None:
            data = np.ones(total)
        else:
            data = np.fromiter(chain.from_iterable(index.values), dtype=np.float64, count=total)

        return sparse.csr_matrix(
            (data, (rows, cols)), shape=(index.num_events, index.num_predicates)
        )

    @staticmethod
    def _probabilities(features: sparse.csr_matrix, params: np.ndarray) -> np.ndarray:
        scores = np.asarray(features @ params)
        scores -= scores.max(axis=1, keepdims=True)
        probabilities = np.exp(scores)
        return probabilities / probabilities.sum(axis=1, keepdims=True)
