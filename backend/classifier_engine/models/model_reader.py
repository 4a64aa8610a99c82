"""
Readers for GIS models written by the model writers.
"""

import gzip
import io
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import BinaryIO, Dict, TextIO, Tuple, Union

from shared.errors import ModelFormatError

from . import data_stream
from .maxent_model import GIS_MODEL_TYPE, GISModel, Predicate
from .model_writer import is_plain_text_path

logger = logging.getLogger(__name__)


def parse_group_token(token: str) -> Tuple[int, Tuple[int, ...]]:
    """
    Split a compression group token into member count and outcome pattern.

    Raises:
        ModelFormatError: If the token is not a count followed by outcome indices
    """
    parts = token.split(" ")
    try:
        count = int(parts[0])
        outcomes = tuple(int(part) for part in parts[1:])
    except ValueError:
        raise ModelFormatError(f"Invalid outcome pattern: '{token}'") from None
    if count < 0:
        raise ModelFormatError(f"Invalid outcome pattern: '{token}'")
    return count, outcomes


class GISModelReader(ABC):
    """
    Base class of GIS model readers.

    ``get_model`` fixes the structure of the stored model; subclasses define
    how the individual fields are decoded.
    """

    @abstractmethod
    def read_utf(self) -> str:
        pass

    @abstractmethod
    def read_int(self) -> int:
        pass

    @abstractmethod
    def read_double(self) -> float:
        pass

    @abstractmethod
    def close(self):
        pass

    def get_model(self) -> GISModel:
        """
        Read the model.

        Raises:
            ModelFormatError: If the data is not a well-formed GIS model
        """
        try:
            return self._read_model()
        finally:
            self.close()

    def _read_model(self) -> GISModel:
        model_type = self.read_utf()
        if model_type != GIS_MODEL_TYPE:
            raise ModelFormatError(f"Not a GIS model: type is '{model_type}'")

        # Legacy correction constant and parameter
        self.read_int()
        self.read_double()

        outcome_labels = [self.read_utf() for _ in range(self._read_count())]
        patterns = [parse_group_token(self.read_utf()) for _ in range(self._read_count())]
        pred_labels = [self.read_utf() for _ in range(self._read_count())]

        if sum(count for count, _ in patterns) != len(pred_labels):
            raise ModelFormatError(
                f"Outcome patterns cover {sum(count for count, _ in patterns)} predicates "
                f"but the model has {len(pred_labels)}"
            )

        predicates: Dict[str, Predicate] = {}
        names = iter(pred_labels)
        for count, outcomes in patterns:
            for _ in range(count):
                params = tuple(self.read_double() for _ in outcomes)
                predicates[next(names)] = Predicate(outcomes, params)

        try:
            model = GISModel(outcome_labels, predicates)
        except ValueError as e:
            raise ModelFormatError(f"Invalid model: {e}") from e

        logger.debug(
            f"Read model with {len(outcome_labels)} outcomes and {len(predicates)} predicates"
        )
        return model

    def _read_count(self) -> int:
        count = self.read_int()
        if count < 0:
            raise ModelFormatError(f"Negative count in model data: {count}")
        return count


class BinaryGISModelReader(GISModelReader):
    """Read a binary GIS model from a path (``.gz`` is decompressed) or stream."""

    def __init__(self, source: Union[str, Path, BinaryIO]):
        if isinstance(source, (str, Path)):
            path = Path(source)
            self._stream: BinaryIO = (
                gzip.open(path, "rb") if path.suffix == ".gz" else open(path, "rb")
            )
            self._owns_stream = True
        else:
            self._stream = source
            self._owns_stream = False

    def read_utf(self) -> str:
        return data_stream.read_utf(self._stream)

    def read_int(self) -> int:
        return data_stream.read_int(self._stream)

    def read_double(self) -> float:
        return data_stream.read_double(self._stream)

    def close(self):
        if self._owns_stream:
            self._stream.close()


class PlainTextGISModelReader(GISModelReader):
    """Read a plain text GIS model from a path (``.gz`` is decompressed) or stream."""

    def __init__(self, source: Union[str, Path, TextIO]):
        if isinstance(source, (str, Path)):
            path = Path(source)
            if path.suffix == ".gz":
                self._stream: TextIO = io.TextIOWrapper(gzip.open(path, "rb"), encoding="utf-8")
            else:
                self._stream = open(path, "r", encoding="utf-8")
            self._owns_stream = True
        else:
            self._stream = source
            self._owns_stream = False

    def _read_line(self) -> str:
        line = self._stream.readline()
        if not line:
            raise ModelFormatError("Unexpected end of model data")
        return line.rstrip("\n")

    def read_utf(self) -> str:
        return self._read_line()

    def read_int(self) -> int:
        line = self._read_line()
        try:
            return int(line)
        except ValueError:
            raise ModelFormatError(f"Expected an integer, found '{line}'") from None

    def read_double(self) -> float:
        line = self._read_line()
        try:
            return float(line)
        except ValueError:
            raise ModelFormatError(f"Expected a number, found '{line}'") from None

    def close(self):
        if self._owns_stream:
            self._stream.close()


def read_model(path: Union[str, Path]) -> GISModel:
    """Read a model file; ``.txt`` and ``.txt.gz`` paths use the text format."""
    reader: GISModelReader
    if is_plain_text_path(path):
        reader = PlainTextGISModelReader(path)
    else:
        reader = BinaryGISModelReader(path)

    model = reader.get_model()
    logger.info(f"Model read from {path}")
    return model
