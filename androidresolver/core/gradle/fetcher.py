"""产物拉取器: 运行外部构建工具并分类其输出

一次 fetch() 对应构建工具的一次运行:
  1. 生成属性（gradle.properties + -P 参数）
  2. 异步启动构建工具，完成回调经 Dispatcher 回到主逻辑线程
  3. 非零退出码: 全部依赖视为缺失
  4. 解析输出，对修改过版本的产物告警，标记拷贝产物为受管
  5. 发现 Jetpack (AndroidX) 产物且未启用 Jetifier 时:
     能启用则删除受管产物并重跑一次，不能启用则删除受管产物并报告全部缺失
"""

from __future__ import annotations

import logging
import os
import posixpath
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable

from androidresolver.core.config import Config
from androidresolver.core.dep.merger import MergedRequest
from androidresolver.core.dep.models import Dependency
from androidresolver.core.exceptions import DependencyError
from androidresolver.core.gradle.output import parse_tool_output
from androidresolver.core.gradle.properties import (
    GRADLE_PROPERTIES_FILE,
    build_arguments,
    generate_properties,
)
from androidresolver.core.protocols import AssetTracker, BuildEnvironment
from androidresolver.core.scheduler import Dispatcher
from androidresolver.utils.fileutils import format_error, posix_path
from androidresolver.utils.logger import WarningTracker
from androidresolver.utils.shell import CommandExecutor, CommandResult, LocalExecutor
from androidresolver.utils.yaml_io import atomic_write

logger = logging.getLogger(__name__)

# Jetpack 产物的文件名前缀
JETPACK_PREFIX = "androidx."


@dataclass
class ResolutionState:
    """单次拉取周期的状态，周期结束后丢弃"""

    result: CommandResult | None = None
    copied: list[str] = field(default_factory=list)
    missing: list[str] = field(default_factory=list)
    modified: list[str] = field(default_factory=list)
    copied_set: set[str] = field(default_factory=set)
    missing_dependencies: list[Dependency] = field(default_factory=list)
    failed_artifacts: list[str] = field(default_factory=list)
    aars_processed: bool = False
    aborted: bool = False
    tracker: WarningTracker = field(default_factory=WarningTracker, repr=False)

    @property
    def error_or_warning_logged(self) -> bool:
        return self.tracker.triggered

    def close(self) -> None:
        self.tracker.detach()


FetchCallback = Callable[[ResolutionState], None]


def contains_jetpack_libraries(paths: list[str]) -> bool:
    return any(posixpath.basename(posix_path(p)).startswith(JETPACK_PREFIX) for p in paths)


def missing_to_dependencies(
    missing: list[str], dependencies: dict[str, Dependency],
) -> list[Dependency]:
    """把缺失坐标映射回依赖声明

    找不到对应声明时按冒号分段重建（缺省或 "+" 版本视为 LATEST），
    分段不足的坐标告警后跳过，从不抛异常。
    """
    by_spec = {
        f"{d.versionless_key}:+" if d.is_latest else d.key: d
        for d in dependencies.values()
    }
    result: list[Dependency] = []
    for artifact in missing:
        dep = dependencies.get(artifact) or by_spec.get(artifact)
        if dep is None:
            try:
                dep = Dependency.parse(artifact)
            except DependencyError:
                logger.warning(
                    "构建工具报告了无法识别的缺失产物 %s，已忽略（下载脚本可能有误）",
                    artifact,
                )
                continue
        result.append(dep)
    return result


def log_missing_dependencies_error(missing: list[str]) -> None:
    if missing:
        logger.error(
            "解析失败\n\n无法拉取以下依赖:\n%s\n", "\n".join(missing),
        )


class ArtifactFetcher:
    """运行构建工具并把输出整理为 ResolutionState"""

    def __init__(
        self,
        config: Config,
        environment: BuildEnvironment,
        tracker: AssetTracker,
        dispatcher: Dispatcher,
        executor: CommandExecutor | None = None,
    ) -> None:
        self._config = config
        self._environment = environment
        self._tracker = tracker
        self._dispatcher = dispatcher
        self._executor = executor or LocalExecutor()

    @property
    def build_dir(self) -> Path:
        return self._config.path(self._config.gradle_build_dir)

    def build_properties(
        self, request: MergedRequest, destination_dir: str, sdk_root: str,
    ) -> dict[str, str]:
        plugin_version = (self._environment.android_gradle_plugin_version
                          or self._config.data_binding_version_fallback)
        return {
            "ANDROID_HOME": sdk_root,
            "TARGET_DIR": posix_path(os.path.abspath(destination_dir)),
            "MAVEN_REPOS": ";".join(request.repositories),
            "PACKAGES_TO_COPY": ";".join(request.package_specs),
            "USE_JETIFIER": "1" if self._environment.use_jetifier else "0",
            "DATA_BINDING_VERSION": plugin_version,
        }

    def fetch(
        self,
        request: MergedRequest,
        dependencies: dict[str, Dependency],
        destination_dir: str,
        on_complete: FetchCallback,
    ) -> None:
        """启动一次拉取；on_complete 总会在主逻辑线程被调用一次"""
        state = ResolutionState()
        state.tracker.attach()
        all_dependencies = list(dependencies.values())

        def _abort() -> None:
            state.missing_dependencies = list(all_dependencies)
            state.aborted = True
            on_complete(state)

        wrapper = self.build_dir / self._config.gradle_command
        script = self.build_dir / self._config.build_script
        if not wrapper.is_file() or not script.is_file():
            logger.error(
                "构建工具组件不存在 (%s, %s)，解析失败", posix_path(wrapper), posix_path(script),
            )
            _abort()
            return

        properties = self.build_properties(
            request, destination_dir, self._environment.sdk_root,
        )
        atomic_write(self.build_dir / GRADLE_PROPERTIES_FILE, generate_properties(properties))
        args = build_arguments(
            self._config.build_script, properties,
            use_daemon=self._config.use_gradle_daemon,
        )
        cmd = [str(wrapper.resolve()), *args]
        logger.debug("运行依赖拉取脚本\n\n%s\n", " ".join(cmd))

        def _tool_complete(result: CommandResult) -> None:
            state.result = result
            if not result.success:
                logger.error("构建工具拉取依赖失败\n\n%s", result.message)
                _abort()
                return
            report = parse_tool_output(result.stdout, destination_dir)
            state.copied, state.missing, state.modified = (
                report.copied, report.missing, report.modified)
            if state.modified:
                logger.warning(
                    "发现存在冲突的依赖，以下依赖的版本已被修改:\n%s\n",
                    "\n".join(state.modified),
                )
            self._tracker.label(state.copied)

            if contains_jetpack_libraries(state.copied) and \
                    not self._environment.use_jetifier:
                self._delete_labeled()
                if self._environment.enable_jetifier():
                    logger.info("检测到 Jetpack (AndroidX) 库，已启用 Jetifier 并重新解析")
                    state.close()
                    self.fetch(request, dependencies, destination_dir, on_complete)
                    return
                logger.error("检测到 Jetpack (AndroidX) 库，但当前环境无法启用 Jetifier")
                _abort()
                return
            on_complete(state)

        self._executor.execute_async(
            cmd, self._dispatcher.deliver(_tool_complete), cwd=str(self.build_dir),
        )

    def _delete_labeled(self) -> None:
        error = format_error("删除受管产物失败", self._tracker.delete_labeled())
        if error:
            logger.error(error)
