"""受管产物标签存储

记录由解析器拷贝或生成的文件 / 目录，持久化到 YAML 文件:
    managed:
      - Assets/Plugins/Android/play-services-base-18.0.1.aar
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Iterable

import yaml

from androidresolver.utils.fileutils import delete_existing, posix_path
from androidresolver.utils.yaml_io import load_yaml, save_yaml

logger = logging.getLogger(__name__)


class LabelStore:
    """基于 YAML 文件的 AssetTracker 实现"""

    def __init__(self, label_file: str | Path) -> None:
        self.label_file = Path(label_file)
        self._paths: list[str] | None = None

    def _load(self) -> list[str]:
        if self._paths is None:
            try:
                data = load_yaml(self.label_file)
            except (OSError, ValueError, yaml.YAMLError) as e:
                logger.warning("读取受管产物标签失败 %s (%s)，视为空", self.label_file, e)
                data = {}
            self._paths = [str(p) for p in data.get("managed") or [] if p]
        return self._paths

    def _save(self) -> None:
        save_yaml(self.label_file, {"managed": self._load()})

    def find_labeled(self) -> list[str]:
        """全部仍存在于磁盘上的受管产物"""
        paths = self._load()
        existing = [p for p in paths if os.path.exists(p)]
        if len(existing) != len(paths):
            self._paths = existing
            self._save()
        return list(existing)

    def label(self, paths: Iterable[str]) -> None:
        current = self._load()
        added = [p for p in dict.fromkeys(posix_path(p) for p in paths) if p not in current]
        if added:
            current.extend(added)
            self._save()

    def unlabel(self, paths: Iterable[str]) -> None:
        remove = {posix_path(p) for p in paths}
        current = self._load()
        kept = [p for p in current if p not in remove]
        if len(kept) != len(current):
            self._paths = kept
            self._save()

    def is_labeled(self, path: str) -> bool:
        return posix_path(path) in self._load()

    def delete_labeled(self) -> list[str]:
        """删除全部受管产物并清空标签，返回删除失败信息"""
        failures: list[str] = []
        for path in self._load():
            failures.extend(delete_existing(path))
        self._paths = []
        self._save()
        return failures
