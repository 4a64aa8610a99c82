"""
Event indexers.

Turn a stream of labeled events into the compact tables a numeric trainer
works on: predicate and outcome label tables, and per unique event the
predicate indices, optional values, outcome index and occurrence count.
Predicates seen fewer than ``cutoff`` times are dropped.
"""

import json
import logging
import tempfile
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, Iterable, List, MutableMapping, Optional, Tuple

from .event import Event

logger = logging.getLogger(__name__)

ONE_PASS_VALUE = "OnePass"
TWO_PASS_VALUE = "TwoPass"
ONE_PASS_REAL_VALUE = "OnePassRealValue"

DATA_INDEXER_VALUES = (ONE_PASS_VALUE, TWO_PASS_VALUE, ONE_PASS_REAL_VALUE)

# Report keys
EVENT_TOKENS_KEY = "Number of Event Tokens"
OUTCOMES_KEY = "Number of Outcomes"
PREDICATES_KEY = "Number of Predicates"


@dataclass
class EventIndex:
    """Indexed training data produced by a DataIndexer."""

    contexts: List[Tuple[int, ...]]
    values: Optional[List[Tuple[float, ...]]]
    outcome_list: List[int]
    num_times_seen: List[int]
    pred_labels: List[str]
    pred_counts: List[int]
    outcome_labels: List[str]

    @property
    def num_events(self) -> int:
        """Number of unique indexed events."""
        return len(self.outcome_list)

    @property
    def num_outcomes(self) -> int:
        return len(self.outcome_labels)

    @property
    def num_predicates(self) -> int:
        return len(self.pred_labels)


# (outcome index, predicate indices, values)
_IndexedEvent = Tuple[int, Tuple[int, ...], Optional[Tuple[float, ...]]]


class DataIndexer(ABC):
    """
    Base class for event indexers.

    Subclasses decide how the event stream is read; counting, filtering,
    sorting and merging are shared.
    """

    name = ""
    keeps_values = False

    def __init__(
        self,
        cutoff: int = 5,
        sort: bool = True,
        report: Optional[MutableMapping[str, str]] = None,
    ):
        """
        Initialize data indexer.

        Args:
            cutoff: Minimum number of occurrences a predicate needs to be kept
            sort: Sort events and merge duplicates
            report: Optional mapping receiving indexing diagnostics
        """
        self.cutoff = cutoff
        self.sort = sort
        self.report = report if report is not None else {}

    @abstractmethod
    def index(self, events: Iterable[Event]) -> EventIndex:
        """Consume the event stream once and index it."""

    @staticmethod
    def _update(context: Iterable[str], counter: Dict[str, int]):
        for pred in context:
            counter[pred] = counter.get(pred, 0) + 1

    def _predicate_index(self, counter: Dict[str, int]) -> Dict[str, int]:
        kept = [pred for pred, count in counter.items() if count >= self.cutoff]
        return {pred: i for i, pred in enumerate(kept)}

    def _event_values(self, event: Event) -> Optional[Tuple[float, ...]]:
        if not self.keeps_values:
            return None
        if event.values is None:
            return (1.0,) * len(event.context)
        return event.values

    def _index_events(
        self,
        events: Iterable[Event],
        predicate_index: Dict[str, int],
        outcome_map: Dict[str, int],
    ) -> List[_IndexedEvent]:
        indexed: List[_IndexedEvent] = []
        dropped = 0

        for event in events:
            values = self._event_values(event)
            preds: List[int] = []
            kept_values: List[float] = []
            for ci, pred in enumerate(event.context):
                if pred in predicate_index:
                    preds.append(predicate_index[pred])
                    if values is not None:
                        kept_values.append(values[ci])

            # Events without any kept predicate carry no information
            if not preds:
                dropped += 1
                logger.debug(f"Dropped event {event}")
                continue

            if event.outcome not in outcome_map:
                outcome_map[event.outcome] = len(outcome_map)

            indexed.append(
                (
                    outcome_map[event.outcome],
                    tuple(preds),
                    tuple(kept_values) if values is not None else None,
                )
            )

        if dropped:
            logger.warning(f"Dropped {dropped} events without predicates above cutoff")

        return indexed

    def _sort_and_merge(
        self, indexed: List[_IndexedEvent]
    ) -> Tuple[List[_IndexedEvent], List[int]]:
        if not self.sort:
            return indexed, [1] * len(indexed)

        indexed = sorted(indexed)
        unique: List[_IndexedEvent] = []
        counts: List[int] = []
        for event in indexed:
            if unique and unique[-1] == event:
                counts[-1] += 1
            else:
                unique.append(event)
                counts.append(1)

        logger.info(f"Sorting and merging events... Reduced {len(indexed)} events to {len(unique)}.")
        return unique, counts

    def _build(
        self,
        events: Iterable[Event],
        counter: Dict[str, int],
        num_tokens: int,
    ) -> EventIndex:
        predicate_index = self._predicate_index(counter)
        outcome_map: Dict[str, int] = {}

        indexed = self._index_events(events, predicate_index, outcome_map)
        unique, counts = self._sort_and_merge(indexed)

        index = EventIndex(
            contexts=[preds for _, preds, _ in unique],
            values=[values for _, _, values in unique] if self.keeps_values else None,
            outcome_list=[outcome for outcome, _, _ in unique],
            num_times_seen=counts,
            pred_labels=list(predicate_index),
            pred_counts=[counter[pred] for pred in predicate_index],
            outcome_labels=list(outcome_map),
        )

        self.report[EVENT_TOKENS_KEY] = str(num_tokens)
        self.report[OUTCOMES_KEY] = str(index.num_outcomes)
        self.report[PREDICATES_KEY] = str(index.num_predicates)

        logger.info(
            f"Indexed {num_tokens} events: {index.num_events} unique, "
            f"{index.num_outcomes} outcomes, {index.num_predicates} predicates"
        )

        return index


class OnePassDataIndexer(DataIndexer):
    """Index events held in memory after a single read of the stream."""

    name = ONE_PASS_VALUE

    def index(self, events: Iterable[Event]) -> EventIndex:
        start = time.time()
        logger.info(f"Indexing events with {self.name} using cutoff of {self.cutoff}")

        event_list: List[Event] = []
        counter: Dict[str, int] = {}
        for event in events:
            event_list.append(event)
            self._update(event.context, counter)

        logger.info(f"Computed event counts: {len(event_list)} events")

        index = self._build(event_list, counter, len(event_list))
        logger.info(f"Done indexing in {time.time() - start:.2f} s.")
        return index


class OnePassRealValueDataIndexer(OnePassDataIndexer):
    """One-pass indexer that keeps the real values of predicates."""

    name = ONE_PASS_REAL_VALUE
    keeps_values = True

    def _event_values(self, event: Event) -> Optional[Tuple[float, ...]]:
        values = super()._event_values(event)
        for value in values:
            if value < 0:
                raise ValueError(f"Negative predicate values are not allowed: {event}")
        return values


class TwoPassDataIndexer(DataIndexer):
    """
    Count predicates in a first pass and index in a second one.

    The stream is read once; the first pass spools the events to a temporary
    file, one JSON array per line, which the second pass reads back.
    """

    name = TWO_PASS_VALUE

    def index(self, events: Iterable[Event]) -> EventIndex:
        start = time.time()
        logger.info(f"Indexing events with {self.name} using cutoff of {self.cutoff}")

        counter: Dict[str, int] = {}
        num_tokens = 0

        with tempfile.TemporaryFile("w+", encoding="utf-8") as spool:
            for event in events:
                # Values are not kept by this indexer
                spool.write(json.dumps([event.outcome, list(event.context)]))
                spool.write("\n")
                self._update(event.context, counter)
                num_tokens += 1

            logger.info(f"Computed event counts: {num_tokens} events")

            spool.seek(0)
            spooled = (Event(*json.loads(line)) for line in spool)
            index = self._build(spooled, counter, num_tokens)

        logger.info(f"Done indexing in {time.time() - start:.2f} s.")
        return index


DATA_INDEXERS = {
    ONE_PASS_VALUE: OnePassDataIndexer,
    TWO_PASS_VALUE: TwoPassDataIndexer,
    ONE_PASS_REAL_VALUE: OnePassRealValueDataIndexer,
}
