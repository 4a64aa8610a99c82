"""
Labeled training events and the one-event-per-line event file format.

A line holds the outcome followed by its context predicates, separated by
whitespace. Real-valued files attach a value to a predicate as ``name=value``.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Tuple, Union

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Event:
    """
    A single training event: an outcome observed with a set of predicates.

    Values, when present, are aligned with the context predicates.
    """

    outcome: str
    context: Tuple[str, ...]
    values: Optional[Tuple[float, ...]] = None

    def __post_init__(self):
        object.__setattr__(self, "context", tuple(self.context))
        if self.values is not None:
            values = tuple(float(v) for v in self.values)
            if len(values) != len(self.context):
                raise ValueError(
                    f"Event has {len(self.context)} predicates but {len(values)} values"
                )
            object.__setattr__(self, "values", values)

    def __str__(self) -> str:
        if self.values is None:
            features = self.context
        else:
            features = [f"{c}={v!r}" for c, v in zip(self.context, self.values)]
        return f"{self.outcome} [{' '.join(features)}]"

    def to_line(self) -> str:
        """Render the event in the event file format."""
        if self.values is None:
            return " ".join((self.outcome,) + self.context)
        features = [f"{c}={v!r}" for c, v in zip(self.context, self.values)]
        return " ".join([self.outcome] + features)


def parse_event_line(line: str, real_valued: bool = False) -> Event:
    """
    Parse one line of an event file.

    Args:
        line: Line with the outcome first and the context predicates after it
        real_valued: Read ``name=value`` predicates as real values

    Returns:
        Parsed event
    """
    tokens = line.split()
    if not tokens:
        raise ValueError("Cannot parse an event from an empty line")

    outcome, features = tokens[0], tokens[1:]
    if not real_valued:
        return Event(outcome, tuple(features))

    context: List[str] = []
    values: List[float] = []
    for feature in features:
        name, sep, value = feature.rpartition("=")
        if not sep:
            context.append(feature)
            values.append(1.0)
            continue
        try:
            values.append(float(value))
        except ValueError:
            raise ValueError(f"Invalid predicate value in '{feature}'") from None
        context.append(name)

    return Event(outcome, tuple(context), tuple(values))


class EventFileStream:
    """
    Iterate the events of an event file.

    The file is re-opened on every iteration; blank lines are skipped.
    """

    def __init__(
        self,
        path: Union[str, Path],
        real_valued: bool = False,
        encoding: str = "utf-8",
    ):
        self.path = Path(path)
        self.real_valued = real_valued
        self.encoding = encoding

    def __iter__(self) -> Iterator[Event]:
        with open(self.path, "r", encoding=self.encoding) as f:
            for line in f:
                if line.strip():
                    yield parse_event_line(line, self.real_valued)


def write_event_file(
    path: Union[str, Path], events: Iterable[Event], encoding: str = "utf-8"
) -> int:
    """
    Write events to an event file.

    Returns:
        Number of events written
    """
    count = 0
    with open(path, "w", encoding=encoding) as f:
        for event in events:
            f.write(event.to_line())
            f.write("\n")
            count += 1

    logger.info(f"Wrote {count} events to {path}")
    return count
