"""单逻辑线程调度器

宿主环境的资产 / 构建 API 只能在主线程调用，因此所有修改 explode 缓存
和受管产物目录的操作都通过 Dispatcher 串行执行：

  - run_on_main(fn):        任意线程投递回调，下一次 tick 时在主逻辑线程执行
  - deliver(fn):            为异步外部操作（子进程）生成完成回调，完成时回到主逻辑线程
  - poll_until_complete(f): 注册增量任务，每次 tick 执行一步，返回 True 表示完成
  - tick():                 宿主每帧调用一次
  - drain():                CLI / 测试使用，循环 tick 直到空闲

长耗时的批处理（逐个检查 / 处理 AAR）实现为 StepTask，每步只处理一个产物。
"""

from __future__ import annotations

import logging
import threading
from collections import deque
from dataclasses import dataclass
from typing import Callable, Protocol

from androidresolver.core.protocols import ProgressCallback

logger = logging.getLogger(__name__)

StepFunction = Callable[[], bool]


@dataclass
class StepResult:
    """增量任务单步结果"""

    done: bool
    progress: float = 0.0
    message: str = ""


class StepTask(Protocol):
    """增量任务协议"""

    def step(self) -> StepResult:
        """执行一步，返回是否完成及进度"""
        ...


class Dispatcher:
    """主逻辑线程的任务队列 + 增量任务轮询"""

    def __init__(self) -> None:
        self._cond = threading.Condition()
        self._queue: deque[Callable[[], None]] = deque()
        self._polled: list[StepFunction] = []
        self._outstanding = 0

    # ------------------------------------------------------------------
    # 投递
    # ------------------------------------------------------------------

    def run_on_main(self, fn: Callable[[], None]) -> None:
        """投递回调到主逻辑线程（线程安全）"""
        with self._cond:
            self._queue.append(fn)
            self._cond.notify_all()

    def deliver(self, fn: Callable[..., None]) -> Callable[..., None]:
        """包装异步操作的完成回调

        返回的函数可在任意线程调用，实际回调会在主逻辑线程执行。
        在返回的函数被调用之前，drain() 会等待而不是退出。
        """
        with self._cond:
            self._outstanding += 1

        def _complete(*args: object) -> None:
            with self._cond:
                self._outstanding -= 1
                self._queue.append(lambda: fn(*args))
                self._cond.notify_all()

        return _complete

    def poll_until_complete(self, step_fn: StepFunction) -> None:
        """注册增量任务（仅主逻辑线程调用）"""
        self._polled.append(step_fn)

    def poll_task(
        self,
        task: StepTask,
        progress: ProgressCallback | None = None,
        on_done: Callable[[], None] | None = None,
    ) -> None:
        """以 StepTask 形式注册增量任务

        step() 抛出异常时任务视为结束，on_done 仍会被调用。
        """

        def _step() -> bool:
            try:
                result = task.step()
            except Exception:
                logger.exception("增量任务执行失败: %r", task)
                result = StepResult(done=True, progress=1.0)
            if progress is not None:
                progress(result.progress, result.message)
            if result.done and on_done is not None:
                on_done()
            return result.done

        self.poll_until_complete(_step)

    # ------------------------------------------------------------------
    # 执行
    # ------------------------------------------------------------------

    @property
    def idle(self) -> bool:
        with self._cond:
            return not self._queue and not self._polled and self._outstanding == 0

    def tick(self) -> bool:
        """执行已排队的回调，并让每个增量任务前进一步；返回本次是否有工作"""
        with self._cond:
            callbacks = list(self._queue)
            self._queue.clear()
        for fn in callbacks:
            try:
                fn()
            except Exception:
                logger.exception("主线程回调执行失败: %r", fn)

        polled = list(self._polled)
        for step_fn in polled:
            try:
                done = step_fn()
            except Exception:
                logger.exception("增量任务执行失败: %r", step_fn)
                done = True
            if done and step_fn in self._polled:
                self._polled.remove(step_fn)
        return bool(callbacks or polled)

    def drain(self, timeout: float | None = None) -> None:
        """循环 tick 直到没有排队回调、增量任务和未完成的异步操作

        timeout 为单次等待异步操作的上限（秒），超时抛 TimeoutError。
        """
        while True:
            if self.tick():
                continue
            with self._cond:
                if self._queue or self._polled:
                    continue
                if self._outstanding == 0:
                    return
                if not self._cond.wait(timeout) and not self._queue:
                    raise TimeoutError(
                        f"等待外部操作超时 ({self._outstanding} 个未完成)",
                    )
