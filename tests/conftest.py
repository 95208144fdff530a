"""公共测试夹具: 伪造的命令执行器 / SDK 安装器 / AAR 构造工具 / 临时工程"""

from __future__ import annotations

import zipfile
from pathlib import Path
from typing import Any, Callable

import pytest

from androidresolver.core.abis import AbiSet
from androidresolver.core.config import Config
from androidresolver.core.environment import EnvironmentSnapshot, StaticEnvironment
from androidresolver.utils.shell import CommandResult

APP_ID = "com.example.app"


class FakeExecutor:
    """按顺序返回预设结果的命令执行器，on_run 可模拟构建工具拷贝文件"""

    def __init__(
        self,
        *results: CommandResult,
        on_run: Callable[[list[str], str], None] | None = None,
    ) -> None:
        self.results = list(results) or [CommandResult(0, "", "")]
        self.on_run = on_run
        self.calls: list[dict[str, Any]] = []

    def execute(
        self, cmd: Any, *, cwd: str = ".", env: dict[str, str] | None = None,
        timeout: int | None = None,
    ) -> CommandResult:
        self.calls.append({"cmd": list(cmd), "cwd": cwd})
        if self.on_run is not None:
            self.on_run(list(cmd), cwd)
        return self.results.pop(0) if len(self.results) > 1 else self.results[0]

    def execute_async(
        self, cmd: Any, on_complete: Callable[[CommandResult], None], *,
        cwd: str = ".", env: dict[str, str] | None = None,
    ) -> None:
        on_complete(self.execute(cmd, cwd=cwd, env=env))


class FakeInstaller:
    """记录安装请求，立即以给定结果完成"""

    def __init__(self, success: bool = True, on_install: Callable[[], None] | None = None) -> None:
        self.success = success
        self.on_install = on_install
        self.requests: list[list[str]] = []

    def install(self, package_ids: list[str], on_complete: Callable[[bool], None]) -> None:
        self.requests.append(list(package_ids))
        if self.on_install is not None:
            self.on_install()
        on_complete(self.success)


def build_aar(
    path: Path,
    *,
    manifest: str | bytes = '<manifest package="com.lib"/>',
    classes: bool = True,
    abis: tuple[str, ...] = (),
    extra: dict[str, str] | None = None,
) -> Path:
    """构造一个 AAR 归档"""
    path.parent.mkdir(parents=True, exist_ok=True)
    with zipfile.ZipFile(path, "w") as zf:
        zf.writestr("AndroidManifest.xml", manifest)
        if classes:
            zf.writestr("classes.jar", b"PK\x05\x06" + b"\x00" * 18)
        for abi in abis:
            zf.writestr(f"jni/{abi}/libnative.so", f"so-{abi}")
        for name, content in (extra or {}).items():
            zf.writestr(name, content)
    return path


def tool_output(copied: list[str] = (), missing: list[str] = (), modified: list[str] = ()) -> str:
    """构造构建工具的标准输出"""
    sections = []
    for header, lines in (("Copied artifacts:", copied), ("Missing artifacts:", missing),
                          ("Modified artifacts:", modified)):
        if lines:
            sections.append(header + "\n" + "\n".join(lines) + "\n")
    return "\n".join(sections)


@pytest.fixture
def make_aar() -> Callable[..., Path]:
    return build_aar


@pytest.fixture
def snapshot() -> EnvironmentSnapshot:
    return EnvironmentSnapshot(
        application_id=APP_ID, target_abis=AbiSet(["armeabi-v7a"]),
    )


@pytest.fixture
def project(tmp_path: Path) -> Config:
    """带构建工具组件和 SDK 目录的临时工程配置"""
    cfg = Config(project_dir=str(tmp_path))
    build_dir = cfg.path(cfg.gradle_build_dir)
    build_dir.mkdir(parents=True)
    (build_dir / cfg.gradle_command).write_text("#!/bin/sh\n", encoding="utf-8")
    (build_dir / cfg.build_script).write_text("// script\n", encoding="utf-8")
    (tmp_path / "sdk").mkdir()
    cfg.path(cfg.package_dir).mkdir(parents=True)
    return cfg


@pytest.fixture
def environment(tmp_path: Path, snapshot: EnvironmentSnapshot) -> StaticEnvironment:
    return StaticEnvironment(snapshot, sdk_root=str(tmp_path / "sdk"))
