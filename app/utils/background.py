"""백그라운드 작업 디스패처 (fire-and-forget).

Background dispatcher for best-effort side effects such as outbound email.
Each job runs as its own ``asyncio`` task; the dispatcher keeps a strong
reference until the task finishes and reports failures through a done
callback, so a failing job never reaches the request that scheduled it.
"""

import asyncio
import logging
from collections.abc import Callable, Coroutine
from typing import Any

logger = logging.getLogger(__name__)

ErrorHandler = Callable[[str, BaseException], None]


class BackgroundDispatcher:
    """결과를 기다리지 않는 비동기 작업 실행기.

    Fire-and-forget task runner with its own error channel.

    Args:
        on_error: 실패 콜백, 기본은 로깅 (Failure callback, logs by default)
    """

    def __init__(self, on_error: ErrorHandler | None = None) -> None:
        self._tasks: set[asyncio.Task[Any]] = set()
        self._on_error: ErrorHandler = on_error or self._log_failure

    @property
    def pending(self) -> int:
        """실행 중인 작업 수 (Number of in-flight tasks)."""
        return len(self._tasks)

    def dispatch(self, coro: Coroutine[Any, Any, Any], label: str) -> asyncio.Task[Any]:
        """코루틴을 백그라운드 작업으로 실행합니다.

        Schedule ``coro`` on the running loop and return immediately.

        Args:
            coro: 실행할 코루틴 (Coroutine to run)
            label: 로그용 작업 이름 (Job name used in logs)

        Returns:
            asyncio.Task: 생성된 작업 (The scheduled task)
        """
        task: asyncio.Task[Any] = asyncio.get_running_loop().create_task(coro, name=label)
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        return task

    def _on_done(self, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc: BaseException | None = task.exception()
        if exc is not None:
            self._on_error(task.get_name(), exc)

    @staticmethod
    def _log_failure(label: str, exc: BaseException) -> None:
        logger.error("Background job %s failed", label, exc_info=exc)

    async def drain(self, timeout: float | None = None) -> None:
        """진행 중인 작업이 끝날 때까지 기다립니다.

        Wait for in-flight tasks, e.g. on shutdown or in tests. Tasks still
        running after ``timeout`` seconds are cancelled.
        """
        if not self._tasks:
            return
        pending = list(self._tasks)
        _, not_done = await asyncio.wait(pending, timeout=timeout)
        for task in not_done:
            task.cancel()
        if not_done:
            logger.warning("Cancelled %d background job(s) on drain", len(not_done))


# 싱글턴 인스턴스 (Process-wide dispatcher)
dispatcher: BackgroundDispatcher = BackgroundDispatcher()
