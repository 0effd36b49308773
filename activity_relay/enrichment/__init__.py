"""
Event enrichment

Classification, name resolution and normalization of Asana webhook events.
"""

from .classifier import Classification, classify
from .pipeline import EnrichmentPipeline, NormalizedEvent
from .resolver import NameResolver, Resolution, ResolutionError

__all__ = [
    "Classification",
    "classify",
    "EnrichmentPipeline",
    "NormalizedEvent",
    "NameResolver",
    "Resolution",
    "ResolutionError",
]
