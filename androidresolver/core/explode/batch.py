"""批量处理受管产物

每次 step() 只处理一个产物，由 Dispatcher 在主逻辑线程逐步驱动。
处理对象是全部受管产物与缓存中全部条目的并集:
  - 缓存失效或本轮新拷贝的产物: 需要解包则调用 ArchiveProcessor，
    否则清理路径已变化的旧展开目录
  - 每个产物处理后保存缓存
"""

from __future__ import annotations

import logging
import os

from androidresolver.core.exceptions import ResolverError
from androidresolver.core.explode.cache import ExplodeCache, generates_project
from androidresolver.core.explode.processor import ArchiveProcessor
from androidresolver.core.protocols import AssetTracker, BuildEnvironment
from androidresolver.core.scheduler import StepResult
from androidresolver.utils.fileutils import delete_existing, format_error

logger = logging.getLogger(__name__)


class ProcessArtifactsTask:
    """逐个处理产物的增量任务"""

    def __init__(
        self,
        cache: ExplodeCache,
        processor: ArchiveProcessor,
        tracker: AssetTracker,
        environment: BuildEnvironment,
        dest_dir: str,
        updated: set[str],
    ) -> None:
        self._cache = cache
        self._processor = processor
        self._environment = environment
        self._dest_dir = dest_dir
        self._updated = set(updated)
        artifacts = list(tracker.find_labeled())
        artifacts.extend(e.path for e in cache.entries.values())
        self._pending = list(dict.fromkeys(artifacts))
        self._total = len(self._pending)
        self.failed: list[str] = []

    def step(self) -> StepResult:
        if not self._pending:
            return StepResult(done=True, progress=1.0, message="库处理完成")
        artifact = self._pending.pop(0)
        progress = (self._total - len(self._pending) - 1) / self._total
        try:
            self._process_one(artifact)
        except ResolverError as e:
            self.failed.append(artifact)
            logger.error("处理 %s 失败，Android 构建将会失败\n%s", artifact, e)
        except Exception:
            self.failed.append(artifact)
            logger.exception("处理 %s 时出现意外错误，Android 构建将会失败", artifact)
        if not self._pending:
            return StepResult(done=True, progress=1.0, message="库处理完成")
        return StepResult(done=False, progress=progress, message=artifact)

    def _process_one(self, artifact: str) -> None:
        explode = self._cache.should_explode(artifact)
        entry = self._cache.find_entry(artifact)
        if entry is None:
            logger.debug("跳过不存在的产物: %s", artifact)
            return
        logger.debug("处理 %s (%s)", artifact, entry)
        snapshot = self._environment.snapshot()
        if self._cache.is_dirty(entry) or artifact in self._updated:
            if explode and os.path.isfile(artifact):
                project = generates_project(explode, snapshot)
                entry.available_abis = self._processor.process(
                    artifact, self._dest_dir, snapshot, generate_project=project,
                )
                if not project:
                    entry.modification_time = os.path.getmtime(artifact)
            elif artifact != entry.path:
                logger.debug("清理旧的展开目录: %s", artifact)
                exploded = self._cache.exploded_path(artifact)
                error = format_error(
                    f"删除展开目录 {exploded} 失败", delete_existing(exploded),
                )
                if error:
                    logger.error(error)
            entry.apply_snapshot_flags(snapshot)
            entry.target_abis = snapshot.target_abis
        self._cache.save()
