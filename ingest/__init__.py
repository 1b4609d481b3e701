# ingest/__init__.py
from .config import ParseOptions
from .models import Event, EventKind, DispatchDecision, DispatchReason, SizeEstimate
from .normalizer import EventNormalizer
from .batch import parse_batch
from .chunked import parse_chunked
from .estimator import estimate_size
from .worker import WorkerSession
from .dispatcher import WorkerDispatcher, transform_payload

__all__ = [
    "ParseOptions",
    "Event",
    "EventKind",
    "DispatchDecision",
    "DispatchReason",
    "SizeEstimate",
    "EventNormalizer",
    "parse_batch",
    "parse_chunked",
    "estimate_size",
    "WorkerSession",
    "WorkerDispatcher",
    "transform_payload",
]
