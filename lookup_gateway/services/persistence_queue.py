import asyncio
from typing import Optional

from lookup_gateway.core.exceptions.errors import PersistenceError
from lookup_gateway.services.models import PersistJob
from lookup_gateway.services.persister import ResultPersister
from lookup_gateway.utils.logging import get_logger


class PersistenceQueue:
    """Bounded queue of persist jobs drained by background workers.

    ``submit`` never waits: when the queue is full the job is dropped and
    counted. Failures are logged and counted, never raised to the submitter.
    """

    def __init__(self, persister: ResultPersister, maxsize: int = 100, workers: int = 2):
        self.persister = persister
        self._queue: asyncio.Queue[PersistJob] = asyncio.Queue(maxsize=maxsize)
        self._worker_count = max(1, workers)
        self._workers: list[asyncio.Task] = []
        self.logger = get_logger()

        self.submitted = 0
        self.completed = 0
        self.failed = 0
        self.dropped = 0
        self.last_error: Optional[str] = None

    @property
    def running(self) -> bool:
        return bool(self._workers)

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    async def start(self) -> None:
        if self._workers:
            return
        self._workers = [
            asyncio.create_task(self._worker(i), name=f"persist-worker-{i}")
            for i in range(self._worker_count)
        ]
        self.logger.info(f"Persistence queue started with {self._worker_count} workers")

    async def stop(self, drain_timeout: float = 10.0) -> None:
        if not self._workers:
            return
        try:
            await asyncio.wait_for(self._queue.join(), timeout=drain_timeout)
        except asyncio.TimeoutError:
            self.logger.warning(
                f"Persistence queue not drained after {drain_timeout}s; "
                f"abandoning {self._queue.qsize()} jobs"
            )
        for task in self._workers:
            task.cancel()
        await asyncio.gather(*self._workers, return_exceptions=True)
        self._workers = []
        self.logger.info("Persistence queue stopped")

    def submit(self, job: PersistJob) -> bool:
        try:
            self._queue.put_nowait(job)
        except asyncio.QueueFull:
            self.dropped += 1
            self.logger.warning(
                f"Persistence queue full, dropping result for {job.request.route} "
                f"{job.request.param_name}={job.request.param_value}"
            )
            return False
        self.submitted += 1
        return True

    async def schedule(self, job: PersistJob) -> bool:
        """Coroutine wrapper around ``submit`` for response background tasks."""
        return self.submit(job)

    async def join(self) -> None:
        """Wait until every submitted job has been processed."""
        await self._queue.join()

    async def _worker(self, index: int) -> None:
        while True:
            job = await self._queue.get()
            try:
                await self.persister.classify_and_persist(job.request, job.result)
                self.completed += 1
            except PersistenceError as e:
                self.failed += 1
                self.last_error = e.message
                self.logger.error(f"Error saving to storage (non-critical): {e.message}")
            except Exception as e:
                self.failed += 1
                self.last_error = str(e)
                self.logger.exception(f"Unexpected error in persist worker {index}: {e}")
            finally:
                self._queue.task_done()

    def stats(self) -> dict[str, object]:
        return {
            "running": self.running,
            "pending": self.pending,
            "submitted": self.submitted,
            "completed": self.completed,
            "failed": self.failed,
            "dropped": self.dropped,
            "last_error": self.last_error,
        }
