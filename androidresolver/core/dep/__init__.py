"""依赖声明、合并与版本比较"""

from androidresolver.core.dep.merger import DependencyMerger, MergedRequest
from androidresolver.core.dep.models import LATEST_VERSION, Dependency
from androidresolver.core.dep.registry import DependencyRegistry
from androidresolver.core.dep.version import compare_versions

__all__ = [
    "LATEST_VERSION",
    "Dependency",
    "DependencyMerger",
    "DependencyRegistry",
    "MergedRequest",
    "compare_versions",
]
