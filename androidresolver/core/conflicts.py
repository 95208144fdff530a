"""冲突检测与处理

在一次完整解析结束后运行，检查资产目录中与受管产物同名（去掉版本号）的
非受管 AAR / JAR:
  - 非受管版本都不比受管版本新时，经 confirm 回调确认后删除
  - 否则（或用户拒绝删除）输出告警，列出受管产物和冲突路径
  - 旧版单体 google-play-services.jar 与新版 play-services-* 同时存在时
    总是告警，无法自动处理
"""

from __future__ import annotations

import logging
import os
import posixpath
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable

from androidresolver.core.dep.models import PACKAGING_EXTENSIONS
from androidresolver.core.dep.version import compare_versions, version_key
from androidresolver.core.protocols import AssetTracker
from androidresolver.utils.fileutils import delete_existing, format_error, posix_path

logger = logging.getLogger(__name__)

PLAY_SERVICES_PREFIXES = ("play-services-", "com.google.android.gms.play-services-")
LEGACY_PLAY_SERVICES_JAR = "google-play-services.jar"

# .srcaar 不参与构建，不会产生冲突
CONFLICT_EXTENSIONS = tuple(e for e in PACKAGING_EXTENSIONS if e != ".srcaar")

ConfirmCallback = Callable[[str], bool]


def versionless_name(filename: str) -> str:
    """文件名去掉最后一个 "-" 及之后的部分"""
    basename = posixpath.basename(posix_path(filename))
    split = basename.rfind("-")
    return basename[:split] if split >= 0 else basename


def version_from_filename(filename: str) -> str:
    """文件名中的版本号；只去掉打包扩展名，展开目录名原样使用"""
    basename = posixpath.basename(posix_path(filename))
    stem, ext = posixpath.splitext(basename)
    if ext in PACKAGING_EXTENSIONS:
        basename = stem
    return basename[len(versionless_name(basename)) + 1:]


@dataclass
class ConflictReport:
    """冲突处理结果"""

    removed: list[str] = field(default_factory=list)
    unresolved: dict[str, list[str]] = field(default_factory=dict)
    legacy_warning: bool = False

    @property
    def clean(self) -> bool:
        return not self.unresolved and not self.legacy_warning


class ConflictResolver:
    """受管产物与非受管产物的版本冲突处理器"""

    def __init__(
        self,
        assets_dir: str | Path,
        tracker: AssetTracker,
        confirm: ConfirmCallback | None = None,
    ) -> None:
        self.assets_dir = Path(assets_dir)
        self._tracker = tracker
        self._confirm = confirm

    def _scan_assets(self) -> list[str]:
        found: list[str] = []
        if not self.assets_dir.is_dir():
            return found
        for root, dirs, files in os.walk(self.assets_dir):
            dirs.sort()
            found.extend(posix_path(os.path.join(root, f)) for f in sorted(files))
        return found

    def resolve(self) -> ConflictReport:
        report = ConflictReport()

        managed: dict[str, str] = {}
        managed_play_services: list[str] = []
        for filename in self._tracker.find_labeled():
            if not os.path.exists(filename):
                continue
            name = versionless_name(filename)
            managed[name] = filename
            if name.startswith(PLAY_SERVICES_PREFIXES):
                managed_play_services.append(filename)
        managed_paths = {os.path.abspath(p) for p in managed.values()}

        unmanaged: dict[str, list[str]] = {}
        legacy_jars: list[str] = []
        for filename in self._scan_assets():
            if os.path.abspath(filename) in managed_paths:
                continue
            basename = posixpath.basename(filename)
            if basename.lower() == LEGACY_PLAY_SERVICES_JAR:
                legacy_jars.append(filename)
            elif posixpath.splitext(basename)[1].lower() in CONFLICT_EXTENSIONS:
                unmanaged.setdefault(versionless_name(filename), []).append(filename)

        if managed_play_services and legacy_jars:
            report.legacy_warning = True
            logger.warning(
                "发现旧版 %s!\n\n当前状态下应用无法构建。\n%s 位于:\n%s\n\n"
                "它与使用新版 Google Play services 的插件不兼容（冲突库位于）:\n%s\n\n"
                "请找到使用 %s 的插件，补充所需的新版库或联系插件作者。\n",
                LEGACY_PLAY_SERVICES_JAR, LEGACY_PLAY_SERVICES_JAR,
                "\n".join(legacy_jars), "\n".join(managed_play_services),
                LEGACY_PLAY_SERVICES_JAR,
            )

        for name, managed_path in managed.items():
            conflicting = unmanaged.get(name)
            if conflicting:
                self._resolve_conflict(managed_path, conflicting, report)
        return report

    def _resolve_conflict(
        self, managed_path: str, conflicting: list[str], report: ConflictReport,
    ) -> None:
        current = version_from_filename(managed_path)
        versions = sorted({version_from_filename(p) for p in conflicting}, key=version_key)
        message = (
            f"发现冲突的 Android 库 {versionless_name(managed_path)}\n\n"
            f"{managed_path} (由解析器管理) 与以下文件冲突:\n" + "\n".join(conflicting) + "\n"
        )

        if compare_versions(versions[-1], current) <= 0 and self._confirm is not None \
                and self._confirm(message + "\n冲突的库比受管库旧，是否删除旧库以解决冲突?"):
            failures: list[str] = []
            for path in conflicting:
                failures.extend(delete_existing(path))
            error = format_error("无法删除旧库", failures)
            if error:
                logger.error(error)
            report.removed.extend(p for p in conflicting if not os.path.exists(p))
            return

        report.unresolved[managed_path] = list(conflicting)
        logger.warning(
            "%s\n当前状态下应用很可能无法构建。\n\n可尝试:\n"
            "* 更新解析器管理的依赖，移除对旧库的引用\n"
            "* 联系存在冲突依赖的插件作者更新插件\n",
            message,
        )
