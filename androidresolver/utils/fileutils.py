"""文件 / 目录操作工具

删除类操作不抛异常，而是返回失败信息列表，由调用方汇总后写日志。
"""

from __future__ import annotations

import contextlib
import logging
import os
import shutil
import tempfile
from pathlib import Path
from typing import Iterator

logger = logging.getLogger(__name__)


def posix_path(path: str | Path) -> str:
    """统一使用正斜杠分隔符"""
    return str(path).replace("\\", "/")


def delete_existing(path: str | Path) -> list[str]:
    """删除文件或目录（不存在视为成功），返回失败信息列表"""
    p = Path(path)
    failures: list[str] = []
    try:
        if p.is_dir() and not p.is_symlink():
            shutil.rmtree(p)
        elif p.exists() or p.is_symlink():
            p.unlink()
    except OSError as e:
        failures.append(f"{p}: {e}")
    return failures


def format_error(summary: str, failures: list[str]) -> str:
    """把失败列表格式化为一条错误信息，无失败时返回空字符串"""
    if not failures:
        return ""
    return summary + "\n" + "\n".join(failures)


def move_directory(src: str | Path, dest: str | Path) -> None:
    """移动目录，目标存在时先删除"""
    dest_p = Path(dest)
    if dest_p.exists():
        error = format_error(f"无法覆盖目录 {dest_p}", delete_existing(dest_p))
        if error:
            raise OSError(error)
    dest_p.parent.mkdir(parents=True, exist_ok=True)
    shutil.move(str(src), str(dest_p))


def merge_directory(src: str | Path, dest: str | Path) -> None:
    """把 src 的内容合并复制到 dest（同名文件覆盖）"""
    shutil.copytree(src, dest, dirs_exist_ok=True)


def find_path_under_directory(search_dir: str | Path, suffix: str) -> str:
    """在 search_dir 下查找相对路径以 suffix 结尾的目录

    返回相对 search_dir 的 POSIX 路径，未找到返回空字符串。
    用于仓库目录在工程内被移动后的重新定位。
    """
    base = Path(search_dir)
    wanted = posix_path(suffix).strip("/").lower()
    if not wanted or not base.is_dir():
        return ""
    for root, dirs, _files in os.walk(base):
        dirs.sort()
        for d in dirs:
            rel = posix_path(os.path.relpath(os.path.join(root, d), base))
            if rel.lower().endswith(wanted):
                return rel
    return ""


@contextlib.contextmanager
def temporary_directory(prefix: str = "androidresolver-") -> Iterator[Path]:
    """创建临时目录，退出时无论成功或异常都删除

    删除失败只记录 WARNING，不覆盖原始异常。
    """
    path = Path(tempfile.mkdtemp(prefix=prefix))
    try:
        yield path
    finally:
        error = format_error(
            f"清理临时目录失败: {path}", delete_existing(path),
        )
        if error:
            logger.warning(error)
