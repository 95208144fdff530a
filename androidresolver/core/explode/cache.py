"""Explode 缓存: 记录每个受管产物是否需要解包，以及做出该决定时的环境

职责:
- 按产物名（去掉打包扩展名）保存 ExplodeCacheEntry
- 判断缓存条目是否失效（dirty_reason 是纯函数，只和环境快照比较）
- should_explode: 命中有效缓存时直接复用，否则检查归档内容
- 持久化: 内容与上次保存的副本不同时才写文件

缓存文件格式 (YAML):
    aars:
      - aar: play-services-base-18.0.1
        modificationTime: 1700000000.0
        explode: false
        bundleId: com.example.app
        path: Assets/Plugins/Android/play-services-base-18.0.1.aar
        availableAbis: universal
        targetAbi: universal
        gradleBuildEnabled: true
        gradleExport: false
        gradleTemplate: false
        ignoredVersion: ''
"""

from __future__ import annotations

import copy
import logging
import os
import posixpath
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

import yaml

from androidresolver.core.abis import AbiSet
from androidresolver.core.dep.models import PACKAGING_EXTENSIONS
from androidresolver.core.environment import EnvironmentSnapshot
from androidresolver.core.exceptions import ArtifactProcessingError
from androidresolver.core.explode.processor import (
    APPLICATION_ID_VARIABLE,
    CLASSES_JAR,
    JNI_DIR,
    MANIFEST_FILE,
    extract_zip,
)
from androidresolver.core.protocols import AssetTracker, BuildEnvironment
from androidresolver.core.scheduler import StepResult
from androidresolver.utils.fileutils import posix_path, temporary_directory
from androidresolver.utils.yaml_io import load_yaml, save_yaml

logger = logging.getLogger(__name__)


class DirtyReason(str, Enum):
    """缓存条目失效原因"""

    APPLICATION_ID_CHANGED = "application_id_changed"
    TARGET_ABIS_CHANGED = "target_abis_changed"
    BUILD_SYSTEM_CHANGED = "build_system_changed"
    EXPORT_CHANGED = "export_changed"
    TEMPLATE_CHANGED = "template_changed"
    EXPLODED_DIRECTORY_MISSING = "exploded_directory_missing"
    ARCHIVE_FILE_MISSING = "archive_file_missing"


@dataclass
class ExplodeCacheEntry:
    """单个受管产物的缓存记录

    path 始终指向该记录描述的磁盘位置（原归档或展开后的目录）。
    ignored_version 只做读写保留，不参与失效判断。
    """

    path: str = ""
    modification_time: float = 0.0
    explode: bool = False
    bundle_id: str = ""
    available_abis: AbiSet = field(default_factory=AbiSet)
    target_abis: AbiSet = field(default_factory=AbiSet)
    gradle_build_enabled: bool = True
    gradle_export: bool = False
    gradle_template: bool = False
    ignored_version: str = ""

    @classmethod
    def for_snapshot(cls, path: str, snapshot: EnvironmentSnapshot) -> ExplodeCacheEntry:
        """新条目，环境标志取当前值"""
        return cls(
            path=path,
            gradle_build_enabled=snapshot.gradle_build_enabled,
            gradle_export=snapshot.gradle_export_enabled,
            gradle_template=snapshot.gradle_template_enabled,
        )

    def apply_snapshot_flags(self, snapshot: EnvironmentSnapshot) -> None:
        self.gradle_build_enabled = snapshot.gradle_build_enabled
        self.gradle_export = snapshot.gradle_export_enabled
        self.gradle_template = snapshot.gradle_template_enabled

    def to_dict(self, key: str) -> dict[str, Any]:
        return {
            "aar": key,
            "modificationTime": self.modification_time,
            "explode": self.explode,
            "bundleId": self.bundle_id,
            "path": self.path,
            "availableAbis": str(self.available_abis),
            "targetAbi": str(self.target_abis),
            "gradleBuildEnabled": self.gradle_build_enabled,
            "gradleExport": self.gradle_export,
            "gradleTemplate": self.gradle_template,
            "ignoredVersion": self.ignored_version,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ExplodeCacheEntry:
        return cls(
            path=str(data.get("path", "")),
            modification_time=float(data.get("modificationTime", 0.0)),
            explode=bool(data.get("explode", False)),
            bundle_id=str(data.get("bundleId", "")),
            available_abis=AbiSet.parse(data.get("availableAbis")),
            target_abis=AbiSet.parse(data.get("targetAbi")),
            gradle_build_enabled=bool(data.get("gradleBuildEnabled", True)),
            gradle_export=bool(data.get("gradleExport", False)),
            gradle_template=bool(data.get("gradleTemplate", False)),
            ignored_version=str(data.get("ignoredVersion") or ""),
        )


# =========================================================================
# 失效判断
# =========================================================================

def generates_project(explode: bool, snapshot: EnvironmentSnapshot) -> bool:
    """是否生成展开工程（否则原地重新打包）"""
    return explode and snapshot.generates_project


def dirty_reason(
    entry: ExplodeCacheEntry, snapshot: EnvironmentSnapshot,
) -> DirtyReason | None:
    """条目相对环境快照的失效原因，有效时返回 None"""
    if entry.bundle_id != snapshot.application_id:
        return DirtyReason.APPLICATION_ID_CHANGED
    if not entry.available_abis.is_universal and entry.target_abis != snapshot.target_abis:
        return DirtyReason.TARGET_ABIS_CHANGED
    if entry.gradle_build_enabled != snapshot.gradle_build_enabled:
        return DirtyReason.BUILD_SYSTEM_CHANGED
    if entry.gradle_export != snapshot.gradle_export_enabled:
        return DirtyReason.EXPORT_CHANGED
    if entry.gradle_template != snapshot.gradle_template_enabled:
        return DirtyReason.TEMPLATE_CHANGED
    if generates_project(entry.explode, snapshot):
        if not os.path.isdir(entry.path):
            return DirtyReason.EXPLODED_DIRECTORY_MISSING
    elif not os.path.isfile(entry.path):
        return DirtyReason.ARCHIVE_FILE_MISSING
    return None


def artifact_name(path: str) -> str:
    """产物路径 -> 缓存键（文件名去掉打包扩展名）"""
    filename = posixpath.basename(posix_path(path))
    for ext in PACKAGING_EXTENSIONS:
        if filename.endswith(ext):
            return filename[:-len(ext)]
    return filename


# =========================================================================
# 缓存
# =========================================================================

class ExplodeCache:
    """持久化的 explode 决策缓存（仅主逻辑线程访问）"""

    def __init__(
        self,
        cache_file: str | Path,
        package_dir: str,
        environment: BuildEnvironment,
        *,
        explode_aars: bool = True,
    ) -> None:
        self.cache_file = Path(cache_file)
        self.package_dir = posix_path(package_dir)
        self._environment = environment
        self._explode_aars = explode_aars
        self._entries: dict[str, ExplodeCacheEntry] = {}
        self._saved: dict[str, ExplodeCacheEntry] = {}

    @property
    def entries(self) -> dict[str, ExplodeCacheEntry]:
        return self._entries

    # ------------------------------------------------------------------
    # 持久化
    # ------------------------------------------------------------------

    def load(self, tracker: AssetTracker | None = None) -> None:
        """加载缓存文件；文件不存在时通过检查全部受管产物重建"""
        if not self.cache_file.exists():
            if tracker is not None:
                for path in tracker.find_labeled():
                    logger.debug("缓存产物状态: %s", path)
                    try:
                        self.should_explode(path)
                    except ArtifactProcessingError as e:
                        logger.error("%s", e)
            return

        self._entries.clear()
        try:
            data = load_yaml(self.cache_file)
            for record in data.get("aars") or []:
                if not isinstance(record, dict):
                    continue
                key = str(record.get("aar") or "")
                entry = ExplodeCacheEntry.from_dict(record)
                if key and entry.path:
                    self._entries[key] = entry
        except (OSError, ValueError, TypeError, yaml.YAMLError) as e:
            logger.warning("读取 AAR 缓存 %s 失败 (%s)，自动解析会变慢", self.cache_file, e)
        self._saved = copy.deepcopy(self._entries)

    @property
    def modified(self) -> bool:
        """当前内容与上次保存的副本是否不同"""
        return self._entries != self._saved

    def save(self) -> bool:
        """内容变化（或文件不存在）时写入，返回是否实际写入"""
        if self.cache_file.exists() and not self.modified:
            return False
        data = {"aars": [e.to_dict(k) for k, e in self._entries.items()]}
        try:
            save_yaml(self.cache_file, data)
        except (OSError, yaml.YAMLError) as e:
            logger.warning("写入 AAR 缓存 %s 失败 (%s)，下次启动后自动解析会变慢",
                           self.cache_file, e)
            return False
        self._saved = copy.deepcopy(self._entries)
        return True

    def clear(self) -> None:
        self._entries.clear()
        self.save()

    # ------------------------------------------------------------------
    # 查询
    # ------------------------------------------------------------------

    def find_entry(self, path: str) -> ExplodeCacheEntry | None:
        """按产物名查找；展开目录路径也能找到其源归档的条目"""
        name = artifact_name(path)
        for ext in ("",) + PACKAGING_EXTENSIONS:
            entry = self._entries.get(name + ext)
            if entry is not None:
                return entry
        return None

    def exploded_path(self, path: str) -> str:
        return posixpath.join(self.package_dir, artifact_name(path))

    def dirty_reason(self, entry: ExplodeCacheEntry) -> DirtyReason | None:
        return dirty_reason(entry, self._environment.snapshot())

    def is_dirty(self, entry: ExplodeCacheEntry) -> bool:
        reason = self.dirty_reason(entry)
        if reason is not None:
            logger.debug("%s: 缓存失效 (%s)", entry.path, reason.value)
        return reason is not None

    # ------------------------------------------------------------------
    # explode 决策
    # ------------------------------------------------------------------

    def should_explode(self, path: str) -> bool:
        """判断产物是否需要解包，并更新缓存

        path 可以是归档文件，也可以是已展开的目录。
        """
        snapshot = self._environment.snapshot()
        entry = self.find_entry(path)
        new_entry = entry is None
        if entry is None:
            entry = ExplodeCacheEntry.for_snapshot(path, snapshot)
        explode_dir = self.exploded_path(path)
        available: AbiSet | None = None
        explode = False

        # 导出工程且未开启 explode 时不解包
        if not (snapshot.gradle_export_enabled and not self._explode_aars):
            explode = not self._environment.supports_aar_files
            use_cached = False
            is_file = os.path.isfile(path)
            if not explode:
                mtime = os.path.getmtime(path) if is_file else 0.0
                if mtime <= entry.modification_time and dirty_reason(entry, snapshot) is None:
                    explode = entry.explode
                    use_cached = True
            if not explode:
                directory = explode_dir if os.path.isdir(explode_dir) else (
                    entry.path if os.path.isdir(entry.path) else None)
                if directory:
                    if not use_cached:
                        new_entry = True
                        available = AbiSet.find_in_directory(directory)
                    explode = True
            if not use_cached and not explode:
                if not is_file:
                    return False
                inspected = self._inspect(path)
                if inspected is not None:
                    explode, available = inspected
                    new_entry = True
                    entry.modification_time = os.path.getmtime(path)

        if new_entry:
            entry.available_abis = available or AbiSet.universal()
            entry.target_abis = snapshot.target_abis
            entry.bundle_id = snapshot.application_id
        entry.path = explode_dir if generates_project(explode, snapshot) else path
        entry.explode = explode
        self._entries[artifact_name(path)] = entry
        self.save()
        return explode

    def _inspect(self, path: str) -> tuple[bool, AbiSet] | None:
        """解出清单 / jni / classes.jar 检查，非 .aar 文件返回 None"""
        if not path.endswith(".aar"):
            return None
        snapshot = self._environment.snapshot()
        try:
            with temporary_directory(prefix="androidresolver-inspect-") as scratch:
                extract_zip(path, scratch, [MANIFEST_FILE, JNI_DIR, CLASSES_JAR])
                explode = False
                manifest = scratch / MANIFEST_FILE
                if manifest.is_file():
                    text = manifest.read_text(encoding="utf-8", errors="replace")
                    explode = APPLICATION_ID_VARIABLE in text
                # 缺少 classes.jar 的归档需要解包补齐
                explode |= not (scratch / CLASSES_JAR).is_file()
                available = AbiSet.find_in_directory(scratch)
                if not available.is_universal:
                    explode |= not self._environment.supports_aar_files
                    if not snapshot.target_abis.is_universal:
                        explode |= bool(available.difference(snapshot.target_abis))
        except Exception as e:
            logger.error("无法检查 AAR 文件 %s\n\n%s", path, e)
            raise ArtifactProcessingError(f"无法检查 AAR 文件 {path}: {e}", path) from e
        return explode, available

    # ------------------------------------------------------------------
    # 构建设置检查
    # ------------------------------------------------------------------

    def on_build_settings(self) -> list[str] | None:
        """检查受管产物是否仍与构建设置一致

        路径已不存在的条目直接移除；失效的条目移除并返回其路径，供调用方重新解析。
        没有需要更新的产物时返回 None。
        """
        to_update: list[str] = []
        to_remove: list[str] = []
        for key, entry in list(self._entries.items()):
            if not os.path.exists(entry.path):
                logger.debug("受管产物已不存在: %s", entry.path)
                to_remove.append(key)
            elif self.is_dirty(entry):
                to_update.append(entry.path)
                to_remove.append(key)
        for key in to_remove:
            del self._entries[key]
        self.save()
        if not to_update:
            return None
        logger.debug("需要重新解析的产物: %s", ", ".join(to_update))
        return to_update


class InspectArtifactsTask:
    """逐个检查新拷贝的产物，把需要解包的产物的展开路径加入 copied_set"""

    def __init__(self, cache: ExplodeCache, artifacts: list[str], copied_set: set[str]) -> None:
        self._cache = cache
        self._pending = list(artifacts)
        self._total = len(self._pending)
        self._copied_set = copied_set

    def step(self) -> StepResult:
        if not self._pending:
            return StepResult(done=True, progress=1.0, message="库检查完成")
        artifact = self._pending.pop(0)
        progress = (self._total - len(self._pending) - 1) / self._total
        try:
            if self._cache.should_explode(artifact):
                self._copied_set.add(self._cache.exploded_path(artifact))
        except ArtifactProcessingError as e:
            logger.error("%s", e)
        except Exception:
            logger.exception("检查 %s 时出现意外错误", artifact)
        return StepResult(done=not self._pending, progress=progress, message=artifact)
