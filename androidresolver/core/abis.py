"""Android ABI 集合

AbiSet 是不可变值类型。空集合即 universal，表示不含原生库 / 适用任意架构。
"""

from __future__ import annotations

from pathlib import Path
from typing import Iterable

ABI_UNIVERSAL = "universal"

# 当前受支持的 ABI
SUPPORTED_ABIS = ("armeabi-v7a", "arm64-v8a", "x86", "x86_64")

# 扫描归档时额外识别的历史 ABI 目录
LEGACY_ABIS = ("armeabi", "mips", "mips64")

# 归档 / 展开工程中存放原生库的目录
NATIVE_LIBRARY_DIRECTORIES = ("libs", "jni")


class AbiSet:
    """一组目标 CPU 架构"""

    __slots__ = ("_abis",)

    def __init__(self, abis: Iterable[str] = ()) -> None:
        self._abis = frozenset(a.strip() for a in abis if a and a.strip())

    @classmethod
    def universal(cls) -> AbiSet:
        return cls()

    @classmethod
    def parse(cls, text: str | None) -> AbiSet:
        """解析逗号分隔字符串，"universal" 或空串返回 universal"""
        if not text or text.strip() == ABI_UNIVERSAL:
            return cls()
        return cls(text.split(","))

    @classmethod
    def find_in_directory(cls, directory: str | Path) -> AbiSet:
        """扫描 libs/<abi> 与 jni/<abi> 子目录"""
        base = Path(directory)
        found: set[str] = set()
        for lib_dir in NATIVE_LIBRARY_DIRECTORIES:
            for abi in SUPPORTED_ABIS + LEGACY_ABIS:
                if (base / lib_dir / abi).is_dir():
                    found.add(abi)
        return cls(found)

    @property
    def is_universal(self) -> bool:
        return not self._abis

    def difference(self, other: AbiSet) -> set[str]:
        return set(self._abis - other._abis)

    def __contains__(self, abi: object) -> bool:
        return abi in self._abis

    def __iter__(self):
        return iter(sorted(self._abis))

    def __len__(self) -> int:
        return len(self._abis)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, AbiSet):
            return NotImplemented
        return self._abis == other._abis

    def __hash__(self) -> int:
        return hash(self._abis)

    def __str__(self) -> str:
        return ",".join(sorted(self._abis)) if self._abis else ABI_UNIVERSAL

    def __repr__(self) -> str:
        return f"AbiSet({str(self)!r})"
