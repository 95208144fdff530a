"""服务容器: 统一依赖注入，CLI 通过容器获取服务而非直接构造

依赖关系图（→ 表示依赖）:
  resolution → environment, tracker, registry
  tracker    → label_file（配置）

用法:
    container = ServiceContainer()
    missing = container.resolution.resolve_sync()

    # 显式注入配置
    cfg = Config.from_file("resolver.yml")
    container = ServiceContainer(config=cfg)
"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from androidresolver.core.conflicts import ConfirmCallback
    from androidresolver.core.config import Config
    from androidresolver.core.dep.registry import DependencyRegistry
    from androidresolver.core.environment import StaticEnvironment
    from androidresolver.core.labels import LabelStore
    from androidresolver.services.resolution_service import ResolutionService

logger = logging.getLogger(__name__)


class ServiceContainer:
    """懒加载服务容器: 同一容器内的实例共享状态"""

    def __init__(
        self, config: Config | None = None, confirm: ConfirmCallback | None = None,
    ) -> None:
        self._instances: dict[str, object] = {}
        if config is None:
            from androidresolver.core.config import get_config
            config = get_config()
        self._config = config
        self._confirm = confirm

    @property
    def config(self) -> Config:
        return self._config

    @property
    def environment(self) -> StaticEnvironment:
        if "environment" not in self._instances:
            from androidresolver.core.environment import StaticEnvironment
            self._instances["environment"] = StaticEnvironment.from_dict(
                self._config.environment,
            )
        return self._instances["environment"]  # type: ignore[return-value]

    @property
    def tracker(self) -> LabelStore:
        if "tracker" not in self._instances:
            from androidresolver.core.labels import LabelStore
            self._instances["tracker"] = LabelStore(
                self._config.path(self._config.label_file),
            )
        return self._instances["tracker"]  # type: ignore[return-value]

    @property
    def registry(self) -> DependencyRegistry:
        if "registry" not in self._instances:
            from androidresolver.core.dep.registry import DependencyRegistry
            registry = DependencyRegistry()
            registry.load_directory(
                self._config.path(self._config.assets_dir), self._config.dependency_glob,
            )
            self._instances["registry"] = registry
        return self._instances["registry"]  # type: ignore[return-value]

    @property
    def resolution(self) -> ResolutionService:
        if "resolution" not in self._instances:
            from androidresolver.services.resolution_service import ResolutionService
            self._instances["resolution"] = ResolutionService(
                self._config, self.environment,
                registry=self.registry,
                tracker=self.tracker,
                confirm=self._confirm,
            )
        return self._instances["resolution"]  # type: ignore[return-value]


# ---- 全局单例 ----

_global: ServiceContainer | None = None
_global_lock = threading.Lock()


def get_container() -> ServiceContainer:
    """获取全局 ServiceContainer 单例（线程安全）"""
    global _global  # noqa: PLW0603
    if _global is not None:
        return _global
    with _global_lock:
        if _global is None:
            _global = ServiceContainer()
        return _global


def init_container(
    config: Config, confirm: ConfirmCallback | None = None,
) -> ServiceContainer:
    """用指定配置替换全局容器"""
    global _global  # noqa: PLW0603
    with _global_lock:
        _global = ServiceContainer(config, confirm)
        return _global


def reset_container() -> None:
    """重置全局容器（仅用于测试）"""
    global _global  # noqa: PLW0603
    with _global_lock:
        _global = None
