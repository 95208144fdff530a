"""依赖版本比较

优先按 PEP 440 规则比较（packaging.version），无法解析时退回到
逐段比较：数字段按数值、字母段按字典序，数字段大于字母段；
前缀相同时，多出数字段的版本更新，多出限定词（如 -alpha）的版本更旧。
"""

from __future__ import annotations

import functools
import re

from packaging import version

_SEGMENT = re.compile(r"\d+|[A-Za-z]+")


def _segments(text: str) -> list[int | str]:
    return [int(s) if s.isdigit() else s.lower() for s in _SEGMENT.findall(text)]


def _compare_segments(lhs: str, rhs: str) -> int:
    left, right = _segments(lhs), _segments(rhs)
    for a, b in zip(left, right):
        if a == b:
            continue
        if isinstance(a, int) and isinstance(b, int):
            return -1 if a < b else 1
        if isinstance(a, int):
            return 1
        if isinstance(b, int):
            return -1
        return -1 if a < b else 1
    if len(left) == len(right):
        return 0
    # 较长一方的下一个段决定先后
    if len(left) > len(right):
        return 1 if isinstance(left[len(right)], int) else -1
    return -1 if isinstance(right[len(left)], int) else 1


def compare_versions(lhs: str, rhs: str) -> int:
    """比较两个版本号，lhs 较旧返回负数，相等返回 0，较新返回正数"""
    try:
        a, b = version.Version(lhs), version.Version(rhs)
    except version.InvalidVersion:
        return _compare_segments(lhs, rhs)
    return (a > b) - (a < b)


version_key = functools.cmp_to_key(compare_versions)
