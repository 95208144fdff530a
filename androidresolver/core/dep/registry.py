"""依赖声明注册表

职责:
- 收集各调用方以编程方式声明的依赖
- 从资产目录下的 YAML 依赖文件加载声明
- 维护全局仓库列表（带声明来源）

依赖文件格式:
    repositories:
      - https://maven.google.com
    dependencies:
      - spec: com.google.android.gms:play-services-base:18.0.1
        repositories: [Assets/Firebase/m2repository]
        packageIds: [extra-google-m2repository]
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml

from androidresolver.core.dep.models import Dependency
from androidresolver.core.exceptions import DependencyError
from androidresolver.utils.fileutils import posix_path
from androidresolver.utils.yaml_io import load_yaml

logger = logging.getLogger(__name__)


class DependencyRegistry:
    """依赖声明注册表 - 合并多个互不协调的声明方"""

    def __init__(self) -> None:
        self._dependencies: dict[str, Dependency] = {}
        self._repositories: dict[str, str] = {}

    # ------------------------------------------------------------------
    # 声明
    # ------------------------------------------------------------------

    def declare(self, dependency: Dependency) -> Dependency:
        """登记一条依赖；同一完整键重复声明时保留首次声明，来源合并"""
        existing = self._dependencies.get(dependency.key)
        if existing is None:
            self._dependencies[dependency.key] = dependency
            return dependency
        if dependency.source and dependency.source not in existing.created_by:
            merged = Dependency(
                group=existing.group,
                artifact=existing.artifact,
                version=existing.version,
                repositories=existing.repositories + tuple(
                    r for r in dependency.repositories
                    if r not in existing.repositories
                ),
                created_by=f"{existing.created_by}\n{dependency.source}"
                if existing.created_by else dependency.source,
                package_ids=existing.package_ids or dependency.package_ids,
            )
            self._dependencies[dependency.key] = merged
            return merged
        return existing

    def declare_spec(
        self,
        spec: str,
        *,
        repositories: list[str] | tuple[str, ...] = (),
        created_by: str = "",
        package_ids: list[str] | None = None,
    ) -> Dependency:
        """以 group:artifact:version 字符串登记依赖"""
        return self.declare(Dependency.parse(
            spec, repositories=repositories,
            created_by=created_by, package_ids=package_ids,
        ))

    def add_repository(self, repository: str, source: str = "") -> None:
        """登记全局仓库，首次声明的来源生效"""
        if repository and repository not in self._repositories:
            self._repositories[repository] = source

    # ------------------------------------------------------------------
    # 查询
    # ------------------------------------------------------------------

    def get_all_dependencies(self) -> dict[str, Dependency]:
        """全部依赖（按声明顺序），以完整键索引"""
        return dict(self._dependencies)

    @property
    def global_repositories(self) -> list[tuple[str, str]]:
        """全局仓库 (仓库, 来源) 列表，按声明顺序"""
        return list(self._repositories.items())

    # ------------------------------------------------------------------
    # 文件加载
    # ------------------------------------------------------------------

    def load_directory(self, assets_dir: str | Path, pattern: str) -> int:
        """加载 assets_dir 下所有匹配 pattern 的依赖文件，返回加载的依赖条数"""
        base = Path(assets_dir)
        if not base.is_dir():
            logger.warning("资产目录不存在: %s", base)
            return 0
        count = 0
        for path in sorted(base.glob(pattern)):
            if path.is_file():
                count += self.load_file(path)
        logger.info("已加载 %d 条依赖声明 (%s)", count, base)
        return count

    def load_file(self, path: str | Path) -> int:
        """加载单个依赖文件，格式错误的条目跳过并告警"""
        source = posix_path(path)
        try:
            data = load_yaml(path)
        except (OSError, ValueError, yaml.YAMLError) as e:
            logger.warning("无法读取依赖文件 %s: %s", source, e)
            return 0

        for repo in data.get("repositories") or []:
            if isinstance(repo, str):
                self.add_repository(repo, source)

        count = 0
        for index, entry in enumerate(data.get("dependencies") or []):
            try:
                self._declare_entry(entry, source)
                count += 1
            except DependencyError as e:
                logger.warning("%s: 第 %d 条依赖无效，已跳过 (%s)", source, index + 1, e)
        return count

    def _declare_entry(self, entry: Any, source: str) -> None:
        if isinstance(entry, str):
            self.declare_spec(entry, created_by=source)
            return
        if not isinstance(entry, dict) or not entry.get("spec"):
            raise DependencyError(f"缺少 spec 字段: {entry!r}")
        repos = entry.get("repositories") or []
        package_ids = entry.get("packageIds")
        if not isinstance(repos, list) or (
                package_ids is not None and not isinstance(package_ids, list)):
            raise DependencyError(f"repositories / packageIds 必须是列表: {entry!r}")
        self.declare_spec(
            str(entry["spec"]),
            repositories=[str(r) for r in repos],
            created_by=source,
            package_ids=[str(p) for p in package_ids] if package_ids is not None else None,
        )
