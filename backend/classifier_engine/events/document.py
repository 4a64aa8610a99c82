"""
Document categorization samples and the events generated from them.

A sample file holds one document per line: the category followed by the
whitespace tokenized text.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable, Iterator, List, Mapping, Optional, Sequence, Tuple, Union

from .event import Event

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DocumentSample:
    """A tokenized document and its category."""

    category: str
    text: Tuple[str, ...]
    extra_information: Mapping[str, Any] = field(default_factory=dict, compare=False)

    def __post_init__(self):
        if self.category is None:
            raise ValueError("category must not be None")
        if self.text is None:
            raise ValueError("text must not be None")
        object.__setattr__(self, "text", tuple(self.text))

    def __str__(self) -> str:
        return f"{self.category}\t{' '.join(self.text)}".rstrip()

    @classmethod
    def parse(cls, line: str) -> "DocumentSample":
        """
        Parse a sample line.

        Args:
            line: Category followed by the document tokens

        Returns:
            Parsed document sample
        """
        tokens = line.split()
        if not tokens:
            raise ValueError("Cannot parse a document sample from an empty line")
        return cls(tokens[0], tuple(tokens[1:]))


def read_document_samples(
    path: Union[str, Path], encoding: str = "utf-8"
) -> Iterator[DocumentSample]:
    """
    Read document samples from a file.

    Empty lines and lines holding only a category are skipped.
    """
    with open(path, "r", encoding=encoding) as f:
        for line_number, line in enumerate(f, start=1):
            tokens = line.split()
            if len(tokens) < 2:
                if tokens:
                    logger.warning(f"Skipping sample without text on line {line_number}")
                continue
            yield DocumentSample(tokens[0], tuple(tokens[1:]))


class BagOfWordsFeatureGenerator:
    """Generates one ``bow=<token>`` feature per document token."""

    def extract_features(
        self, text: Sequence[str], extra_information: Mapping[str, Any]
    ) -> List[str]:
        return [f"bow={token}" for token in text]


class DocumentCategorizerEventStream:
    """
    Iterate the training events of document samples.

    Each sample becomes one event: its category is the outcome, and the
    features of all feature generators form the context.
    """

    def __init__(
        self,
        samples: Iterable[DocumentSample],
        feature_generators: Optional[Sequence[Any]] = None,
    ):
        """
        Initialize event stream.

        Args:
            samples: Document samples
            feature_generators: Objects with an ``extract_features(text, extra)``
                method (default: bag of words)
        """
        self.samples = samples
        self.feature_generators = list(feature_generators or [BagOfWordsFeatureGenerator()])

    def __iter__(self) -> Iterator[Event]:
        for sample in self.samples:
            context: List[str] = []
            for generator in self.feature_generators:
                context.extend(
                    generator.extract_features(sample.text, sample.extra_information)
                )
            yield Event(sample.category, tuple(context))
