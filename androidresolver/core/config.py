"""集中配置管理

提供统一的配置入口，支持从 YAML 文件加载 + 编程式覆盖。
宿主构建环境的实时状态（包名、目标 ABI 等）不放在这里，
由 BuildEnvironment 能力接口提供。
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any

from androidresolver.core.exceptions import ValidationError
from androidresolver.utils.yaml_io import load_yaml

logger = logging.getLogger(__name__)

_PATH_FIELDS = (
    "project_dir", "assets_dir", "package_dir", "explode_cache_file",
    "label_file", "gradle_build_dir", "gradle_command", "build_script", "dependency_glob",
)
_FLAG_FIELDS = ("use_gradle_daemon", "explode_aars", "install_android_packages")


@dataclass
class Config:
    """解析器全局配置"""

    # 目录
    project_dir: str = "."
    assets_dir: str = "Assets"
    package_dir: str = "Assets/Plugins/Android"
    explode_cache_file: str = "Temp/AarExplodeCache.yml"
    label_file: str = "Temp/ManagedArtifacts.yml"

    # 构建工具
    gradle_build_dir: str = "Temp/ResolverGradle"
    gradle_command: str = "gradlew"
    build_script: str = "download_artifacts.gradle"
    use_gradle_daemon: bool = False
    data_binding_version_fallback: str = "2.3.0"

    # 依赖声明
    dependency_glob: str = "**/*Dependencies.yml"

    # 行为开关
    explode_aars: bool = True
    install_android_packages: bool = True

    # 宿主环境（StaticEnvironment 使用）
    environment: dict[str, Any] = field(default_factory=dict)

    # 自定义扩展 (放不到字段里的配置项)
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_file(cls, path: str = "resolver.yml") -> Config:
        """从 YAML 文件加载配置，不存在则返回默认"""
        data = load_yaml(path)
        if not data:
            return cls()
        known = {f.name for f in cls.__dataclass_fields__.values()}
        matched = {k: v for k, v in data.items() if k in known}
        extra = {k: v for k, v in data.items() if k not in known}
        cfg = cls(**matched)
        cfg.extra = extra
        cfg.validate()
        return cfg

    def validate(self) -> None:
        """校验字段类型，失败抛 ValidationError（details 列出全部问题）"""
        errors: list[str] = []
        for name in _PATH_FIELDS:
            value = getattr(self, name)
            if not isinstance(value, str) or not value:
                errors.append(f"{name} 必须是非空字符串: {value!r}")
        for name in _FLAG_FIELDS:
            if not isinstance(getattr(self, name), bool):
                errors.append(f"{name} 必须是布尔值: {getattr(self, name)!r}")
        if not isinstance(self.environment, dict):
            errors.append(f"environment 必须是字典: {self.environment!r}")
        if errors:
            raise ValidationError("配置无效", details=errors)

    def path(self, relative: str) -> Path:
        """将配置中的相对路径解析为工程目录下的路径"""
        p = Path(relative)
        return p if p.is_absolute() else Path(self.project_dir) / p

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


# 全局单例，首次 import 时不加载文件；由 CLI 入口显式初始化
_current: Config | None = None


def get_config() -> Config:
    """获取当前配置（未初始化则返回默认值）"""
    global _current  # noqa: PLW0603
    if _current is None:
        _current = Config()
    return _current


def init_config(path: str = "resolver.yml") -> Config:
    """从文件初始化全局配置"""
    global _current  # noqa: PLW0603
    _current = Config.from_file(path)
    logger.info("配置已加载: %s", path)
    return _current
