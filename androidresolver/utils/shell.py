"""Shell 命令执行工具: 统一子进程调用

通过 CommandExecutor 协议抽象子进程执行，方便测试替换和跨平台适配。
构建工具（Gradle）以异步方式启动，完成后通过回调返回退出码和输出。
"""

from __future__ import annotations

import logging
import shlex
import subprocess
import threading
from dataclasses import dataclass
from typing import Callable, Protocol

logger = logging.getLogger(__name__)


# =========================================================================
# 命令执行结果
# =========================================================================

@dataclass
class CommandResult:
    """命令执行结果（与 subprocess 解耦）"""

    returncode: int
    stdout: str
    stderr: str

    @property
    def success(self) -> bool:
        return self.returncode == 0

    @property
    def message(self) -> str:
        """合并输出，用于错误日志"""
        return (
            f"exit code: {self.returncode}\n"
            f"stdout:\n{self.stdout}\n"
            f"stderr:\n{self.stderr}"
        )


CompletionHandler = Callable[[CommandResult], None]


# =========================================================================
# 命令执行器协议
# =========================================================================

class CommandExecutor(Protocol):
    """命令执行器协议: 抽象子进程调用

    测试时可注入 fake 实现，无需 patch subprocess。
    """

    def execute(
        self,
        cmd: str | list[str],
        *,
        cwd: str = ".",
        env: dict[str, str] | None = None,
        timeout: int | None = None,
    ) -> CommandResult:
        """同步执行命令并返回结果"""
        ...

    def execute_async(
        self,
        cmd: str | list[str],
        on_complete: CompletionHandler,
        *,
        cwd: str = ".",
        env: dict[str, str] | None = None,
    ) -> None:
        """启动命令，结束后以 CommandResult 调用 on_complete"""
        ...


# =========================================================================
# 默认实现: 本地 Shell 执行器
# =========================================================================

class LocalExecutor:
    """本地命令执行器（默认实现）

    execute_async 在后台线程中等待子进程；回调在该线程上触发，
    需要回到主逻辑线程的调用方应自行通过 Dispatcher.run_on_main 转发。
    """

    def execute(
        self,
        cmd: str | list[str],
        *,
        cwd: str = ".",
        env: dict[str, str] | None = None,
        timeout: int | None = None,
    ) -> CommandResult:
        args = shlex.split(cmd) if isinstance(cmd, str) else cmd
        logger.debug("执行命令: %s (cwd=%s)", " ".join(args), cwd)
        try:
            r = subprocess.run(
                args, capture_output=True, text=True,
                cwd=cwd, env=env, check=False, timeout=timeout,
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            return CommandResult(returncode=-1, stdout="", stderr=str(e))
        return CommandResult(
            returncode=r.returncode,
            stdout=r.stdout,
            stderr=r.stderr,
        )

    def execute_async(
        self,
        cmd: str | list[str],
        on_complete: CompletionHandler,
        *,
        cwd: str = ".",
        env: dict[str, str] | None = None,
    ) -> None:
        def _worker() -> None:
            on_complete(self.execute(cmd, cwd=cwd, env=env))

        thread = threading.Thread(target=_worker, name="resolver-cmd", daemon=True)
        thread.start()
