"""
Writers for GIS models.

Predicates are sorted by their outcome pattern so that predicates sharing a
pattern are contiguous; each run of equal patterns is written once as a
``<member count><pattern>`` token instead of once per predicate.

Layout, in order:

    "GIS"                      format tag
    1                          legacy correction constant (int)
    1.0                        legacy correction parameter (double)
    N, N x label               outcome labels
    G, G x token               compression groups
    P, P x name                predicate names in sorted order
    params                     per predicate in sorted order, no length prefix
"""

import gzip
import io
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from functools import total_ordering
from pathlib import Path
from typing import BinaryIO, List, Optional, Sequence, TextIO, Tuple, Union

from shared.errors import ModelFormatError

from . import data_stream
from .maxent_model import GIS_MODEL_TYPE, GISModel

logger = logging.getLogger(__name__)

LEGACY_CORRECTION_CONSTANT = 1
LEGACY_CORRECTION_PARAM = 1.0

PathOrStream = Union[str, Path, BinaryIO]


@total_ordering
@dataclass(frozen=True)
class ComparablePredicate:
    """
    Read-only view of a predicate used to sort and group predicates.

    Ordered by outcome pattern, shorter patterns first and equal lengths
    element by element, then by name.
    """

    name: str
    outcomes: Tuple[int, ...]
    params: Tuple[float, ...]

    @property
    def sort_key(self) -> Tuple[int, Tuple[int, ...], str]:
        return (len(self.outcomes), self.outcomes, self.name)

    def __lt__(self, other: "ComparablePredicate") -> bool:
        if not isinstance(other, ComparablePredicate):
            return NotImplemented
        return self.sort_key < other.sort_key

    def same_pattern(self, other: "ComparablePredicate") -> bool:
        return self.outcomes == other.outcomes

    @property
    def pattern(self) -> str:
        return "".join(f" {outcome}" for outcome in self.outcomes)

    def __str__(self) -> str:
        return self.pattern


@dataclass(frozen=True)
class CompressionGroup:
    """A maximal run of sorted predicates sharing one outcome pattern."""

    outcomes: Tuple[int, ...]
    members: Tuple[ComparablePredicate, ...]

    @property
    def member_count(self) -> int:
        return len(self.members)

    @property
    def token(self) -> str:
        return f"{self.member_count}{self.members[0].pattern}"


def sort_values(model: GISModel) -> List[ComparablePredicate]:
    """Comparable predicates of the model in write order."""
    return sorted(
        ComparablePredicate(name, predicate.outcomes, predicate.params)
        for name, predicate in model.predicates.items()
    )


def compress_outcomes(sorted_preds: Sequence[ComparablePredicate]) -> List[CompressionGroup]:
    """Group sorted predicates into runs of identical outcome patterns."""
    groups: List[CompressionGroup] = []
    current: List[ComparablePredicate] = []

    for predicate in sorted_preds:
        if current and not current[0].same_pattern(predicate):
            groups.append(CompressionGroup(current[0].outcomes, tuple(current)))
            current = []
        current.append(predicate)

    if current:
        groups.append(CompressionGroup(current[0].outcomes, tuple(current)))

    return groups


def sort_and_group(
    model: GISModel,
) -> Tuple[List[ComparablePredicate], List[CompressionGroup]]:
    sorted_preds = sort_values(model)
    return sorted_preds, compress_outcomes(sorted_preds)


class GISModelWriter(ABC):
    """
    Base class of GIS model writers.

    ``persist`` fixes the structure of the stored model; subclasses define how
    the individual fields are encoded.
    """

    def __init__(self, model: GISModel):
        self.model = model

    @abstractmethod
    def write_utf(self, value: str):
        pass

    @abstractmethod
    def write_int(self, value: int):
        pass

    @abstractmethod
    def write_double(self, value: float):
        pass

    @abstractmethod
    def close(self):
        """Flush and release the output."""

    def persist(self):
        """
        Write the model.

        The output is closed whether or not writing succeeds; after a failure
        the written data is incomplete and must be discarded.
        """
        try:
            self._write_model()
        finally:
            self.close()

    def _write_model(self):
        model = self.model

        self.write_utf(GIS_MODEL_TYPE)

        # Not used by readers, kept for format compatibility
        self.write_int(LEGACY_CORRECTION_CONSTANT)
        self.write_double(LEGACY_CORRECTION_PARAM)

        self.write_int(len(model.outcome_labels))
        for label in model.outcome_labels:
            self.write_utf(label)

        sorted_preds, groups = sort_and_group(model)

        self.write_int(len(groups))
        for group in groups:
            self.write_utf(group.token)

        self.write_int(len(sorted_preds))
        for predicate in sorted_preds:
            self.write_utf(predicate.name)

        for predicate in sorted_preds:
            for param in predicate.params:
                self.write_double(param)

        logger.debug(
            f"Wrote model with {len(model.outcome_labels)} outcomes, "
            f"{len(groups)} outcome patterns, {len(sorted_preds)} predicates"
        )


class BinaryGISModelWriter(GISModelWriter):
    """
    Write a GIS model in the binary format.

    When given a path the writer owns the file (gzip-compressed for ``.gz``
    paths) and closes it; a given stream is flushed and left open.
    """

    def __init__(self, model: GISModel, output: PathOrStream):
        super().__init__(model)
        if isinstance(output, (str, Path)):
            path = Path(output)
            self._stream: BinaryIO = (
                gzip.open(path, "wb") if path.suffix == ".gz" else open(path, "wb")
            )
            self._owns_stream = True
        else:
            self._stream = output
            self._owns_stream = False

    def write_utf(self, value: str):
        data_stream.write_utf(self._stream, value)

    def write_int(self, value: int):
        data_stream.write_int(self._stream, value)

    def write_double(self, value: float):
        data_stream.write_double(self._stream, value)

    def close(self):
        try:
            self._stream.flush()
        finally:
            if self._owns_stream:
                self._stream.close()


class PlainTextGISModelWriter(GISModelWriter):
    """Write a GIS model as text, one field per line."""

    def __init__(self, model: GISModel, output: Union[str, Path, TextIO]):
        super().__init__(model)
        if isinstance(output, (str, Path)):
            path = Path(output)
            if path.suffix == ".gz":
                self._stream: TextIO = io.TextIOWrapper(gzip.open(path, "wb"), encoding="utf-8")
            else:
                self._stream = open(path, "w", encoding="utf-8")
            self._owns_stream = True
        else:
            self._stream = output
            self._owns_stream = False

    def _write_line(self, value: str):
        self._stream.write(value)
        self._stream.write("\n")

    def write_utf(self, value: str):
        if "\n" in value or "\r" in value:
            raise ModelFormatError(f"Line breaks cannot be written in a text model: {value!r}")
        self._write_line(value)

    def write_int(self, value: int):
        self._write_line(str(value))

    def write_double(self, value: float):
        self._write_line(repr(float(value)))

    def close(self):
        try:
            self._stream.flush()
        finally:
            if self._owns_stream:
                self._stream.close()


def is_plain_text_path(path: Union[str, Path]) -> bool:
    """Whether a model path names the plain text format (``.txt`` or ``.txt.gz``)."""
    suffixes = Path(path).suffixes
    if suffixes and suffixes[-1] == ".gz":
        suffixes = suffixes[:-1]
    return bool(suffixes) and suffixes[-1] == ".txt"


def write_model(model: GISModel, path: Union[str, Path], plain_text: Optional[bool] = None):
    """
    Persist a model to a file.

    Args:
        model: Model to write
        path: Output path; ``.gz`` compresses the output
        plain_text: Use the text format (default: for ``.txt`` paths)
    """
    if plain_text is None:
        plain_text = is_plain_text_path(path)

    writer: GISModelWriter
    if plain_text:
        writer = PlainTextGISModelWriter(model, path)
    else:
        writer = BinaryGISModelWriter(model, path)
    writer.persist()

    logger.info(f"Model written to {path}")
