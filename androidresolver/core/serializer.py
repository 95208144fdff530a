"""解析串行器: 同一时刻最多只有一次解析在执行

后续请求进入 FIFO 队列，当前解析的完整链路（拉取 → 处理 → 冲突检测）
结束并调用 finished() 后，才会启动下一个请求。
"""

from __future__ import annotations

import logging
import threading
from collections import deque
from typing import Callable

from androidresolver.core.scheduler import Dispatcher

logger = logging.getLogger(__name__)

# 解析任务：接收一个 finished 回调，整个链路完成后必须调用它
ResolutionJob = Callable[[Callable[[], None]], None]


class ResolutionSerializer:
    """单消费者解析队列，生命周期由 ResolutionService 持有"""

    def __init__(self, dispatcher: Dispatcher) -> None:
        self._dispatcher = dispatcher
        self._lock = threading.Lock()
        self._queue: deque[ResolutionJob] = deque()
        self._active: ResolutionJob | None = None

    @property
    def active(self) -> bool:
        with self._lock:
            return self._active is not None

    @property
    def pending(self) -> int:
        with self._lock:
            return len(self._queue)

    def submit(self, job: ResolutionJob) -> None:
        """追加解析请求，并在主逻辑线程尝试调度"""
        with self._lock:
            self._queue.append(job)
            queued = len(self._queue)
        logger.debug("解析请求已排队 (队列长度=%d)", queued)
        self._dispatcher.run_on_main(self.pump)

    def pump(self) -> None:
        """调度步骤：无活动解析时启动队首请求"""
        with self._lock:
            if self._active is not None or not self._queue:
                return
            job = self._queue.popleft()
            self._active = job
        try:
            job(self._make_finished(job))
        except Exception:
            logger.exception("解析任务启动失败")
            self._release(job)

    def _make_finished(self, job: ResolutionJob) -> Callable[[], None]:
        def _finished() -> None:
            self._release(job)
        return _finished

    def _release(self, job: ResolutionJob) -> None:
        with self._lock:
            if self._active is not job:
                return
            self._active = None
        self._dispatcher.run_on_main(self.pump)
