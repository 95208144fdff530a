"""AAR explode 缓存与归档处理"""

from androidresolver.core.explode.batch import ProcessArtifactsTask
from androidresolver.core.explode.cache import (
    DirtyReason,
    ExplodeCache,
    ExplodeCacheEntry,
    InspectArtifactsTask,
    dirty_reason,
)
from androidresolver.core.explode.processor import ArchiveProcessor

__all__ = [
    "ArchiveProcessor",
    "DirtyReason",
    "ExplodeCache",
    "ExplodeCacheEntry",
    "InspectArtifactsTask",
    "ProcessArtifactsTask",
    "dirty_reason",
]
