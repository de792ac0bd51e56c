"""Последовательный воркер с паузой между задачами и токеном отмены."""

import asyncio
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Generic, Iterable, List, Optional, TypeVar

from loguru import logger

JobT = TypeVar("JobT")


class OutcomeStatus(Enum):
    """Статусы выполнения задачи."""

    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class CancellationToken:
    """Токен отмены пакетной операции."""

    def __init__(self):
        self._event = asyncio.Event()

    def cancel(self) -> None:
        """Запрос отмены."""
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    async def wait(self, timeout: float) -> bool:
        """Ожидание отмены не дольше timeout; True, если отменено."""
        if timeout <= 0:
            return self.cancelled
        try:
            await asyncio.wait_for(self._event.wait(), timeout=timeout)
        except asyncio.TimeoutError:
            return False
        return True


@dataclass
class JobOutcome(Generic[JobT]):
    """Результат выполнения одной задачи."""

    job: JobT
    status: OutcomeStatus
    result: Any = None
    error: Optional[str] = None
    processing_time: float = 0.0


class RateLimitedWorker:
    """Выполняет задачи строго по одной с паузой interval между ними.

    Ошибка одной задачи не прерывает очередь; отмена прерывает
    паузу и помечает оставшиеся задачи как отмененные.
    """

    def __init__(self, interval: float, name: str = "pricing"):
        """Инициализация воркера."""
        self.interval = interval
        self.name = name

    async def run(
        self,
        jobs: Iterable[JobT],
        handler: Callable[[JobT], Awaitable[Any]],
        token: Optional[CancellationToken] = None,
    ) -> List[JobOutcome]:
        """Выполнение всех задач очереди."""
        token = token or CancellationToken()
        queue: "asyncio.Queue[JobT]" = asyncio.Queue()
        for job in jobs:
            queue.put_nowait(job)

        total = queue.qsize()
        outcomes: List[JobOutcome] = []
        logger.info(f"Worker {self.name}: starting batch of {total} jobs")

        position = 0
        while not queue.empty():
            job = queue.get_nowait()
            position += 1

            if token.cancelled:
                outcomes.append(JobOutcome(job=job, status=OutcomeStatus.CANCELLED))
                continue

            started = time.monotonic()
            try:
                result = await handler(job)
                outcomes.append(
                    JobOutcome(
                        job=job,
                        status=OutcomeStatus.COMPLETED,
                        result=result,
                        processing_time=time.monotonic() - started,
                    )
                )
            except Exception as e:
                logger.error(f"Worker {self.name}: job {position}/{total} failed: {e}")
                outcomes.append(
                    JobOutcome(
                        job=job,
                        status=OutcomeStatus.FAILED,
                        error=str(e),
                        processing_time=time.monotonic() - started,
                    )
                )

            if not queue.empty() and await token.wait(self.interval):
                logger.warning(f"Worker {self.name}: batch cancelled")

        completed = sum(1 for o in outcomes if o.status is OutcomeStatus.COMPLETED)
        logger.info(f"Worker {self.name}: batch finished, {completed}/{total} completed")
        return outcomes
