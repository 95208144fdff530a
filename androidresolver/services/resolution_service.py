"""解析服务: 一次完整 Android 依赖解析的编排

完整链路（同一时刻只执行一条，由 ResolutionSerializer 保证）:
  SDK 检查 → 拉取（可能因 Jetifier 重跑一次）→ 检查新拷贝的产物
  → 清理过期产物 → 批量处理产物 → 缺失依赖映射
  → SDK 组件安装后再解析一次（可选）→ 冲突处理 → 释放串行器 → 回调

所有步骤都在 Dispatcher 的主逻辑线程上执行；构建工具在后台线程运行，
完成回调经 Dispatcher.deliver 回到主逻辑线程。
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Callable

from androidresolver.core.conflicts import ConfirmCallback, ConflictReport, ConflictResolver
from androidresolver.core.config import Config
from androidresolver.core.dep.merger import DependencyMerger, MergedRequest
from androidresolver.core.dep.models import Dependency
from androidresolver.core.dep.registry import DependencyRegistry
from androidresolver.core.exceptions import ConfigError
from androidresolver.core.explode.batch import ProcessArtifactsTask
from androidresolver.core.explode.cache import ExplodeCache, InspectArtifactsTask
from androidresolver.core.explode.processor import ArchiveProcessor
from androidresolver.core.gradle.fetcher import (
    ArtifactFetcher,
    ResolutionState,
    log_missing_dependencies_error,
    missing_to_dependencies,
)
from androidresolver.core.labels import LabelStore
from androidresolver.core.protocols import (
    AssetTracker,
    BuildEnvironment,
    ProgressCallback,
    SdkPackageInstaller,
)
from androidresolver.core.scheduler import Dispatcher
from androidresolver.core.serializer import ResolutionSerializer
from androidresolver.utils.fileutils import delete_existing, format_error, posix_path
from androidresolver.utils.shell import CommandExecutor

logger = logging.getLogger(__name__)

ResolutionCallback = Callable[[list[Dependency]], None]


def _log_progress(progress: float, message: str) -> None:
    logger.debug("[%3d%%] %s", int(progress * 100), message)


class ResolutionService:
    """Android 依赖解析编排"""

    def __init__(
        self,
        config: Config,
        environment: BuildEnvironment,
        *,
        registry: DependencyRegistry | None = None,
        tracker: AssetTracker | None = None,
        executor: CommandExecutor | None = None,
        installer: SdkPackageInstaller | None = None,
        dispatcher: Dispatcher | None = None,
        confirm: ConfirmCallback | None = None,
        progress: ProgressCallback | None = None,
    ) -> None:
        self.config = config
        self.environment = environment
        self.dispatcher = dispatcher or Dispatcher()
        self.serializer = ResolutionSerializer(self.dispatcher)
        self.registry = registry or DependencyRegistry()
        self.tracker = tracker or LabelStore(config.path(config.label_file))
        self.installer = installer
        self.progress = progress or _log_progress
        self.merger = DependencyMerger(config.project_dir, config.assets_dir)
        self.cache = ExplodeCache(
            config.path(config.explode_cache_file), self.destination_dir, environment,
            explode_aars=config.explode_aars,
        )
        self.processor = ArchiveProcessor(self.tracker)
        self.fetcher = ArtifactFetcher(
            config, environment, self.tracker, self.dispatcher, executor,
        )
        self.conflicts = ConflictResolver(config.path(config.assets_dir), self.tracker, confirm)
        self.last_conflicts: ConflictReport | None = None
        self.last_failed_artifacts: list[str] = []
        self._cache_loaded = False

    @property
    def destination_dir(self) -> str:
        return posix_path(self.config.path(self.config.package_dir))

    # ------------------------------------------------------------------
    # 依赖声明
    # ------------------------------------------------------------------

    def load_dependencies(self) -> int:
        """从资产目录加载依赖声明文件"""
        return self.registry.load_directory(
            self.config.path(self.config.assets_dir), self.config.dependency_glob,
        )

    def merged_request(self) -> MergedRequest:
        return self.merger.merge(
            self.registry.get_all_dependencies().values(),
            self.registry.global_repositories,
        )

    def repository_sources(self) -> list[tuple[str, str]]:
        """(仓库 URI, 声明来源) 列表"""
        return self.merger.repo_uris(
            self.registry.get_all_dependencies().values(),
            self.registry.global_repositories,
        )

    # ------------------------------------------------------------------
    # 解析入口
    # ------------------------------------------------------------------

    def resolve(self, on_complete: ResolutionCallback | None = None) -> None:
        """排队一次完整解析；on_complete 在链路结束时以缺失依赖列表调用"""

        def _job(finished: Callable[[], None]) -> None:
            def _done(missing: list[Dependency]) -> None:
                try:
                    self.last_conflicts = self.conflicts.resolve()
                finally:
                    finished()
                if on_complete is not None:
                    on_complete(missing)

            self._resolve_unsafe(_done)

        self.serializer.submit(_job)

    def resolve_sync(self, timeout: float | None = None) -> list[Dependency]:
        """提交解析并驱动 Dispatcher 直到完成，返回缺失依赖"""
        missing: list[Dependency] = []
        self.resolve(missing.extend)
        self.dispatcher.drain(timeout)
        return missing

    def check_build_settings(self) -> list[str] | None:
        """检查受管产物是否与当前构建设置一致，返回需重新解析的产物路径"""
        self.ensure_cache_loaded()
        return self.cache.on_build_settings()

    def ensure_cache_loaded(self) -> None:
        if not self._cache_loaded:
            self._cache_loaded = True
            self.cache.load(self.tracker)

    # ------------------------------------------------------------------
    # 解析链路
    # ------------------------------------------------------------------

    def _check_sdk(self) -> str:
        sdk_root = self.environment.sdk_root
        if not sdk_root or not os.path.isdir(sdk_root):
            raise ConfigError(
                "Android 依赖解析失败，应用很可能无法运行。\n\n"
                f"Android SDK 路径必须指向有效目录 ({sdk_root or '未设置'})",
            )
        return sdk_root

    def _resolve_unsafe(self, complete: ResolutionCallback) -> None:
        self.ensure_cache_loaded()
        self.last_failed_artifacts = []
        dependencies = self.registry.get_all_dependencies()
        try:
            self._check_sdk()
        except ConfigError as e:
            logger.error("%s", e)
            complete(list(dependencies.values()))
            return

        def _after_first_round(missing: list[Dependency]) -> None:
            if not missing:
                complete(missing)
                return
            self._report_or_install(missing, dependencies, complete)

        logger.debug("执行 Android 依赖解析")
        self._fetch_and_process(dependencies, False, _after_first_round)

    def _report_or_install(
        self,
        missing: list[Dependency],
        dependencies: dict[str, Dependency],
        complete: ResolutionCallback,
    ) -> None:
        required: dict[str, list[str]] = {}
        for dep in missing:
            logger.debug("缺失 Android 组件 %s (SDK 组件: %s)", dep.key,
                         ",".join(dep.package_ids) if dep.package_ids else "(无)")
            for package_id in dep.package_ids or ():
                keys = required.setdefault(package_id, [])
                if dep.key not in keys:
                    keys.append(dep.key)

        if not required or not self.config.install_android_packages or self.installer is None:
            for package_id, keys in required.items():
                logger.warning(
                    "Android SDK 组件 %s 未安装或已过期。\n\n以下依赖需要该组件:\n%s",
                    package_id, "\n".join(keys),
                )
            log_missing_dependencies_error([d.key for d in missing])
            complete(missing)
            return

        def _installed(success: bool) -> None:
            if not success:
                logger.warning("Android SDK 组件安装失败: %s", ", ".join(required))
            self._fetch_and_process(dependencies, True, complete)

        self.installer.install(list(required), self.dispatcher.deliver(_installed))

    def _fetch_and_process(
        self,
        dependencies: dict[str, Dependency],
        log_missing: bool,
        complete: ResolutionCallback,
    ) -> None:
        request = self.merger.merge(dependencies.values(), self.registry.global_repositories)
        Path(self.destination_dir).mkdir(parents=True, exist_ok=True)

        def _fetched(state: ResolutionState) -> None:
            if state.aborted:
                self._finish(state, complete)
                return
            state.copied_set = set(state.copied)
            task = InspectArtifactsTask(self.cache, state.copied, state.copied_set)
            self.dispatcher.poll_task(
                task, self.progress,
                on_done=lambda: self._process(state, dependencies, log_missing, complete),
            )

        self.fetcher.fetch(request, dependencies, self.destination_dir, _fetched)

    def _process(
        self,
        state: ResolutionState,
        dependencies: dict[str, Dependency],
        log_missing: bool,
        complete: ResolutionCallback,
    ) -> None:
        if state.aars_processed:
            return
        state.aars_processed = True
        self._delete_stale(state.copied_set)

        def _processed() -> None:
            state.failed_artifacts = list(task.failed)
            state.missing_dependencies = missing_to_dependencies(state.missing, dependencies)
            if log_missing:
                log_missing_dependencies_error(state.missing)
            self._finish(state, complete)

        task = ProcessArtifactsTask(
            self.cache, self.processor, self.tracker, self.environment,
            self.destination_dir, set(state.copied),
        )
        self.dispatcher.poll_task(task, self.progress, on_done=_processed)

    def _delete_stale(self, copied_set: set[str]) -> None:
        """删除未在本轮拷贝（或其展开目录）中的受管产物"""
        stale = [p for p in self.tracker.find_labeled() if posix_path(p) not in copied_set]
        if not stale:
            return
        logger.debug("删除过期依赖:\n%s", "\n".join(stale))
        failures: list[str] = []
        for path in stale:
            failures.extend(delete_existing(path))
        self.tracker.unlabel(stale)
        error = format_error("删除过期产物失败", failures)
        if error:
            logger.error(error)

    def _finish(self, state: ResolutionState, complete: ResolutionCallback) -> None:
        state.close()
        self.last_failed_artifacts = state.failed_artifacts
        complete(state.missing_dependencies)
