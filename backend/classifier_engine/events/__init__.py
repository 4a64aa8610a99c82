"""
Training event sources and event indexing.

Provides labeled events, event files, document samples, the corpus hash
stream and the data indexers that prepare events for training.
"""

from .document import (
    BagOfWordsFeatureGenerator,
    DocumentCategorizerEventStream,
    DocumentSample,
    read_document_samples,
)
from .event import Event, EventFileStream, parse_event_line, write_event_file
from .hash_sum import HashSumEventStream
from .indexers import (
    DATA_INDEXER_VALUES,
    DATA_INDEXERS,
    DataIndexer,
    EventIndex,
    OnePassDataIndexer,
    OnePassRealValueDataIndexer,
    TwoPassDataIndexer,
)

__all__ = [
    "BagOfWordsFeatureGenerator",
    "DATA_INDEXER_VALUES",
    "DATA_INDEXERS",
    "DataIndexer",
    "DocumentCategorizerEventStream",
    "DocumentSample",
    "Event",
    "EventFileStream",
    "EventIndex",
    "HashSumEventStream",
    "OnePassDataIndexer",
    "OnePassRealValueDataIndexer",
    "TwoPassDataIndexer",
    "parse_event_line",
    "read_document_samples",
    "write_event_file",
]
