"""依赖合并器

把所有声明方的依赖合并为一次确定性的解析请求:
  1. 去重后的包规格列表（LATEST 改写为 group:artifact:+）
  2. 有序去重的仓库 URI 列表：先全局仓库，再按位置轮转交错各依赖的仓库
     (依赖1的 repo[0], 依赖2的 repo[0], ..., 依赖1的 repo[1], ...)

仓库 URI 会做 URI 转义和 Gradle 属性值转义（URI 中的 ":" 保留）。
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterable
from urllib.parse import quote

from androidresolver.core.dep.models import Dependency
from androidresolver.utils.fileutils import find_path_under_directory, posix_path

logger = logging.getLogger(__name__)

# 由宿主构建脚本提供的 Android SDK 仓库占位符
SDK_VARIABLE = "$(ANDROID_SDK)"

URI_SCHEMES = ("file:", "http:", "https:")

# Gradle / Java 属性值中需要转义的字符
PROPERTY_SPECIAL_CHARACTERS = (" ", "\\", "#", "!", "=", ":")

# URI 中不做属性转义的字符
URI_EXCLUDED_CHARACTERS = frozenset({":"})

# 与 RFC 3986 保留字符 + 非保留字符一致，只转义其余字符
_URI_SAFE = ":/?#[]@!$&'()*+,;=-._~%"


def escape_property_value(
    value: str,
    escape: Callable[[str], str] | None = None,
    exclude: Iterable[str] = (),
) -> str:
    """转义属性值中的特殊字符，默认在字符前加反斜杠"""
    escape = escape or (lambda ch: "\\" + ch)
    excluded = set(exclude)
    for ch in PROPERTY_SPECIAL_CHARACTERS:
        if ch not in excluded:
            value = value.replace(ch, escape(ch))
    return value


def escape_uri(uri: str) -> str:
    """URI 转义后再对属性特殊字符做百分号编码，保留 ":" """
    escaped = quote(uri, safe=_URI_SAFE)
    return escape_property_value(
        escaped,
        escape=lambda ch: quote(ch, safe=""),
        exclude=URI_EXCLUDED_CHARACTERS,
    )


def dependencies_to_package_specs(
    dependencies: Iterable[Dependency],
) -> dict[str, str]:
    """依赖 -> {包规格: 来源列表}，来源以 ", " 连接"""
    sources_by_spec: dict[str, str] = {}
    for dep in dependencies:
        spec = f"{dep.versionless_key}:+" if dep.is_latest else dep.key
        source = dep.source
        if spec in sources_by_spec:
            sources_by_spec[spec] = f"{sources_by_spec[spec]}, {source}"
        else:
            sources_by_spec[spec] = source
    return sources_by_spec


@dataclass
class MergedRequest:
    """一次解析请求"""

    package_specs: list[str] = field(default_factory=list)
    repositories: list[str] = field(default_factory=list)
    sources_by_spec: dict[str, str] = field(default_factory=dict)
    sources_by_repo: dict[str, str] = field(default_factory=dict)


class DependencyMerger:
    """依赖合并器（只读依赖声明，不做修改）"""

    def __init__(self, project_dir: str | Path = ".", assets_dir: str = "Assets") -> None:
        self.project_dir = Path(project_dir)
        self.assets_dir = assets_dir

    def merge(
        self,
        dependencies: Iterable[Dependency],
        global_repositories: Iterable[tuple[str, str]] = (),
    ) -> MergedRequest:
        deps = list(dependencies)
        sources_by_spec = dependencies_to_package_specs(deps)
        repos = self.repo_uris(deps, global_repositories)
        return MergedRequest(
            package_specs=list(sources_by_spec),
            repositories=[uri for uri, _ in repos],
            sources_by_spec=sources_by_spec,
            sources_by_repo=dict(repos),
        )

    def repo_uris(
        self,
        dependencies: Iterable[Dependency],
        global_repositories: Iterable[tuple[str, str]] = (),
    ) -> list[tuple[str, str]]:
        """有序的 (仓库 URI, 声明来源) 列表"""
        sources_by_repo: dict[str, list[str]] = {}

        def _add(repo: str | None, source: str) -> None:
            if not repo:
                return
            sources = sources_by_repo.setdefault(repo, [])
            if source not in sources:
                sources.append(source)

        for repo, source in global_repositories:
            _add(self.repo_path_to_uri(repo, source), source)

        deps = list(dependencies)
        max_repos = max((len(d.repositories) for d in deps), default=0)
        for i in range(max_repos):
            for dep in deps:
                if i >= len(dep.repositories):
                    continue
                _add(self.repo_path_to_uri(dep.repositories[i], dep.source), dep.source)

        return [(repo, ", ".join(sources)) for repo, sources in sources_by_repo.items()]

    def repo_path_to_uri(self, repo_path: str, source: str = "") -> str | None:
        """仓库路径转 URI；SDK 仓库返回 None

        本地目录不存在且位于资产目录下时，按后缀在资产目录中重新查找；
        找不到也保留原路径继续解析，只输出告警。
        """
        if repo_path.startswith(SDK_VARIABLE):
            return None
        if not repo_path.startswith(URI_SCHEMES):
            repo_path = self._resolve_local_repo(repo_path, source)
            full_path = posix_path(os.path.abspath(self.project_dir / repo_path))
            prefix = "file://" if full_path.startswith("/") else "file:///"
            repo_path = prefix + full_path
        return escape_uri(repo_path)

    def _resolve_local_repo(self, repo_path: str, source: str) -> str:
        search_dir = self.assets_dir.rstrip("/") + "/"
        normalized = posix_path(repo_path)
        if (self.project_dir / repo_path).is_dir() or \
                not normalized.lower().startswith(search_dir.lower()):
            return repo_path
        found = find_path_under_directory(
            self.project_dir / search_dir, normalized[len(search_dir):],
        )
        if found:
            logger.warning(
                "%s: 仓库路径 '%s' 不存在，改用 '%s'", source, repo_path, search_dir + found,
            )
            return search_dir + found
        logger.warning("%s: 仓库路径 '%s' 不存在", source, repo_path)
        return repo_path
