"""
Helpix Matching Scheduler
Background recomputation of recommendations and proximity alerts

Periodic producers queue one job per auto-matching user; a small pool of
workers runs each job in its own database session with a timeout.
"""
import asyncio
from dataclasses import dataclass
from typing import Optional

import structlog

from helpix.core.config import settings
from helpix.core.database import async_session_maker
from helpix.services.matching_service import MatchingService
from helpix.services.repository import DataStoreUnavailable, MatchingRepository

logger = structlog.get_logger("helpix.scheduler")

RECOMMENDATIONS = "recommendations"
PROXIMITY = "proximity"
JOB_KINDS = (RECOMMENDATIONS, PROXIMITY)


@dataclass(frozen=True)
class RecomputeJob:
    user_id: str
    kind: str


class MatchingScheduler:
    """
    Queue-based recompute scheduler.

    A job for a (user, kind) pair is queued at most once while it waits;
    once a worker picks it up the pair can be queued again.
    """

    def __init__(
        self,
        session_factory=None,
        workers: Optional[int] = None,
        job_timeout: Optional[float] = None,
        recommendation_interval: Optional[float] = None,
        proximity_interval: Optional[float] = None,
    ):
        self.session_factory = session_factory or async_session_maker
        self.workers = workers or settings.SCHEDULER_WORKERS
        self.job_timeout = job_timeout or settings.SCHEDULER_JOB_TIMEOUT
        self.intervals = {
            RECOMMENDATIONS: recommendation_interval or settings.RECOMMENDATION_INTERVAL_SECONDS,
            PROXIMITY: proximity_interval or settings.PROXIMITY_INTERVAL_SECONDS,
        }

        self.queue: asyncio.Queue = asyncio.Queue()
        self._pending: set[RecomputeJob] = set()
        self._tasks: list[asyncio.Task] = []
        self.is_running = False
        self.completed = 0
        self.failed = 0

    async def enqueue(self, job: RecomputeJob) -> bool:
        """Queue a job unless the same one is already waiting."""
        if job.kind not in JOB_KINDS:
            raise ValueError(f"Unknown job kind: {job.kind}")
        if job in self._pending:
            return False
        self._pending.add(job)
        await self.queue.put(job)
        return True

    async def enqueue_user(self, user_id: str) -> None:
        for kind in JOB_KINDS:
            await self.enqueue(RecomputeJob(user_id, kind))

    async def enqueue_auto_matching_users(self, kind: str) -> int:
        """Queue `kind` jobs for every user with auto-matching on."""
        try:
            async with self.session_factory() as session:
                user_ids = await MatchingRepository(session).list_auto_matching_user_ids()
        except DataStoreUnavailable as e:
            logger.warning("producer_skipped", kind=kind, error=str(e))
            return 0

        queued = 0
        for user_id in user_ids:
            if await self.enqueue(RecomputeJob(user_id, kind)):
                queued += 1
        logger.info("jobs_enqueued", kind=kind, users=len(user_ids), queued=queued)
        return queued

    async def run_job(self, job: RecomputeJob) -> None:
        """Run one job in a fresh session; commits on success."""
        async with self.session_factory() as session:
            service = MatchingService(session)
            try:
                if job.kind == RECOMMENDATIONS:
                    await service.refresh_recommendations(job.user_id)
                else:
                    await service.refresh_proximity_alerts(job.user_id)
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def start(self, producers: bool = True) -> None:
        """Start the workers and, unless disabled, the periodic producers."""
        if self.is_running:
            return
        self.is_running = True

        for n in range(self.workers):
            self._tasks.append(asyncio.create_task(self._worker(n)))
        if producers:
            for kind in JOB_KINDS:
                self._tasks.append(asyncio.create_task(self._producer(kind)))

        logger.info("scheduler_started", workers=self.workers, producers=producers)

    async def stop(self) -> None:
        if not self.is_running:
            return
        self.is_running = False

        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []

        logger.info("scheduler_stopped", completed=self.completed, failed=self.failed)

    async def _producer(self, kind: str) -> None:
        while True:
            try:
                await self.enqueue_auto_matching_users(kind)
            except Exception:
                logger.exception("producer_failed", kind=kind)
            await asyncio.sleep(self.intervals[kind])

    async def _worker(self, number: int) -> None:
        log = logger.bind(worker=number)
        while True:
            job = await self.queue.get()
            self._pending.discard(job)
            try:
                await asyncio.wait_for(self.run_job(job), timeout=self.job_timeout)
                self.completed += 1
            except asyncio.TimeoutError:
                self.failed += 1
                log.error("job_timeout", user_id=job.user_id, kind=job.kind, timeout=self.job_timeout)
            except Exception:
                self.failed += 1
                log.exception("job_failed", user_id=job.user_id, kind=job.kind)
            finally:
                self.queue.task_done()
