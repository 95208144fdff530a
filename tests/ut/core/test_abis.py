"""AbiSet 测试"""

from pathlib import Path

import pytest

from androidresolver.core.abis import AbiSet


class TestAbiSet:
    def test_universal(self) -> None:
        assert AbiSet().is_universal
        assert AbiSet.universal() == AbiSet([])
        assert str(AbiSet()) == "universal"

    @pytest.mark.parametrize("text", ["", "universal", None])
    def test_parse_universal(self, text: str | None) -> None:
        assert AbiSet.parse(text).is_universal

    def test_parse_and_str_sorted(self) -> None:
        abis = AbiSet.parse("x86, armeabi-v7a")
        assert str(abis) == "armeabi-v7a,x86"
        assert "x86" in abis
        assert len(abis) == 2

    def test_equality_is_set_equality(self) -> None:
        assert AbiSet(["x86", "arm64-v8a"]) == AbiSet(["arm64-v8a", "x86"])
        assert AbiSet(["x86"]) != AbiSet()
        assert hash(AbiSet(["x86"])) == hash(AbiSet(["x86"]))

    def test_difference(self) -> None:
        available = AbiSet(["armeabi-v7a", "arm64-v8a", "x86"])
        assert available.difference(AbiSet(["armeabi-v7a"])) == {"arm64-v8a", "x86"}

    def test_find_in_directory(self, tmp_path: Path) -> None:
        (tmp_path / "jni" / "x86").mkdir(parents=True)
        (tmp_path / "libs" / "arm64-v8a").mkdir(parents=True)
        (tmp_path / "jni" / "not-an-abi").mkdir(parents=True)
        assert AbiSet.find_in_directory(tmp_path) == AbiSet(["x86", "arm64-v8a"])

    def test_find_in_empty_directory(self, tmp_path: Path) -> None:
        assert AbiSet.find_in_directory(tmp_path).is_universal
