"""依赖声明数据模型

数据类:
- Dependency: 一条 group:artifact:version 依赖声明
"""

from __future__ import annotations

from dataclasses import dataclass

from androidresolver.core.exceptions import DependencyError

LATEST_VERSION = "LATEST"

# 受管产物可能的打包扩展名
PACKAGING_EXTENSIONS = (".aar", ".jar", ".srcaar")


@dataclass(frozen=True)
class Dependency:
    """单条依赖声明（声明后不可变，由声明方持有）"""

    group: str
    artifact: str
    version: str
    repositories: tuple[str, ...] = ()
    created_by: str = ""
    package_ids: tuple[str, ...] | None = None

    @property
    def key(self) -> str:
        """完整键 group:artifact:version，用于拉取"""
        return f"{self.group}:{self.artifact}:{self.version}"

    @property
    def versionless_key(self) -> str:
        """与版本无关的身份键 group:artifact，用于冲突判断"""
        return f"{self.group}:{self.artifact}"

    @property
    def source(self) -> str:
        """声明来源（created_by 的第一行）"""
        return self.created_by.splitlines()[0] if self.created_by else ""

    @property
    def is_latest(self) -> bool:
        return self.version.upper() == LATEST_VERSION

    @classmethod
    def parse(
        cls,
        spec: str,
        *,
        repositories: list[str] | tuple[str, ...] = (),
        created_by: str = "",
        package_ids: list[str] | tuple[str, ...] | None = None,
    ) -> Dependency:
        """从 group:artifact[:version] 字符串构造，缺省或 "+" 版本视为 LATEST"""
        components = [c.strip() for c in spec.strip().split(":")]
        if len(components) < 2 or not components[0] or not components[1]:
            raise DependencyError(f"无效的依赖声明: '{spec}'")
        version = components[2] if len(components) > 2 else ""
        if not version or version == "+":
            version = LATEST_VERSION
        return cls(
            group=components[0],
            artifact=components[1],
            version=version,
            repositories=tuple(repositories),
            created_by=created_by,
            package_ids=tuple(package_ids) if package_ids is not None else None,
        )

    def __str__(self) -> str:
        return self.key
