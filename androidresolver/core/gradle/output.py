"""构建工具输出解析

输出约定: 标准输出中包含零个或多个段标题，每个标题后每行一个路径 / 坐标，
空行结束当前段。不符合约定的内容一律忽略，解析永不失败。
"""

from __future__ import annotations

import posixpath
from dataclasses import dataclass, field

from androidresolver.utils.fileutils import posix_path

COPIED_HEADER = "Copied artifacts:"
MISSING_HEADER = "Missing artifacts:"
MODIFIED_HEADER = "Modified artifacts:"


@dataclass
class ToolReport:
    """一次构建工具运行的产物分类"""

    copied: list[str] = field(default_factory=list)
    missing: list[str] = field(default_factory=list)
    modified: list[str] = field(default_factory=list)


def parse_tool_output(output: str, destination_dir: str) -> ToolReport:
    """解析标准输出；拷贝产物路径拼接到 destination_dir 下并统一为正斜杠"""
    report = ToolReport()
    sections = {
        COPIED_HEADER: report.copied,
        MISSING_HEADER: report.missing,
        MODIFIED_HEADER: report.modified,
    }
    dest = posix_path(destination_dir)
    active: list[str] | None = None
    for raw in output.splitlines():
        line = raw.strip()
        if not line:
            active = None
            continue
        header = next((h for h in sections if line.startswith(h)), None)
        if header is not None:
            active = sections[header]
            continue
        if active is None:
            continue
        if active is report.copied:
            active.append(posixpath.join(dest, posix_path(line)))
        else:
            active.append(line)
    return report
