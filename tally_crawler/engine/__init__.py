"""Engine components orchestrating resolve → fetch → extract → aggregate."""

from .aggregator import Aggregation, Aggregator
from .fetcher import FetchRequest, FetchResponse, Fetcher, TransportError
from .manifest import Area, ManifestError, ManifestIndex, ManifestResolver
from .parser import HEADER, PageHandle, Record, RecordExtractor
from .worker_pool import JobOutcome, WaitGroup, WorkerPool

__all__ = [
    "Aggregation",
    "Aggregator",
    "Area",
    "FetchRequest",
    "FetchResponse",
    "Fetcher",
    "HEADER",
    "JobOutcome",
    "ManifestError",
    "ManifestIndex",
    "ManifestResolver",
    "PageHandle",
    "Record",
    "RecordExtractor",
    "TransportError",
    "WaitGroup",
    "WorkerPool",
]
