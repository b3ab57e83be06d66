"""Bounded-concurrency upload scheduler with fail-fast semantics.

At most ``concurrency`` uploads are in flight at any instant; as soon as
one finishes the next queued upload starts.  Uploads run on a dedicated
thread pool sized to the same limit, driven from the event loop.

On the first failure the scheduler stops starting queued uploads.  Uploads
already in flight are left to finish, but their results are discarded.
``drain`` then raises the first error.  Nothing here exits the process.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterable
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

from webpub.errors import PublishError, ValidationError
from webpub.models.manifest import UploadedFile

logger = logging.getLogger(__name__)


class UploadScheduler:
    """Run upload callables with a fixed concurrency ceiling.

    Parameters
    ----------
    upload:
        Blocking callable turning one path into an ``UploadedFile``.
    concurrency:
        Maximum number of uploads in flight (must be >= 1).
    """

    def __init__(
        self,
        upload: Callable[[Path], UploadedFile],
        concurrency: int = 10,
    ) -> None:
        if concurrency < 1:
            raise ValidationError(f"concurrency must be >= 1, got {concurrency}")
        self._upload = upload
        self.concurrency = concurrency

        self._semaphore = asyncio.Semaphore(concurrency)
        self._lock = asyncio.Lock()
        self._executor: ThreadPoolExecutor | None = None
        self._tasks: list[asyncio.Task[None]] = []
        self._results: list[UploadedFile] = []
        self._failure: PublishError | None = None

        # Observability
        self.in_flight = 0
        self.peak_in_flight = 0
        self.skipped = 0

    @property
    def failed(self) -> bool:
        return self._failure is not None

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    def submit(self, path: Path) -> None:
        """Queue one upload.  Must be called from a running event loop."""
        if self._executor is None:
            self._executor = ThreadPoolExecutor(
                max_workers=self.concurrency, thread_name_prefix="webpub-upload"
            )
        self._tasks.append(asyncio.create_task(self._run_one(path)))

    async def _run_one(self, path: Path) -> None:
        async with self._semaphore:
            if self._failure is not None:
                self.skipped += 1
                return

            self.in_flight += 1
            self.peak_in_flight = max(self.peak_in_flight, self.in_flight)
            loop = asyncio.get_running_loop()
            try:
                record = await loop.run_in_executor(self._executor, self._upload, path)
            except PublishError as exc:
                if self._failure is None:
                    self._failure = exc
                    logger.error("Upload failed, no further uploads will start: %s", exc)
                return
            finally:
                self.in_flight -= 1

            # Late completions after a failure are dropped.
            if self._failure is None:
                async with self._lock:
                    self._results.append(record)

    # ------------------------------------------------------------------
    # Drain
    # ------------------------------------------------------------------

    async def drain(self) -> list[UploadedFile]:
        """Wait for every submitted upload to finish or be skipped.

        Returns
        -------
        list[UploadedFile]
            Results in completion order.

        Raises
        ------
        PublishError
            The first upload failure observed, after in-flight work settles.
        """
        try:
            await asyncio.gather(*self._tasks)
        finally:
            if self._executor is not None:
                self._executor.shutdown(wait=False)
                self._executor = None

        if self._failure is not None:
            if self.skipped:
                logger.info("Skipped %d queued upload(s) after failure", self.skipped)
            raise self._failure

        logger.info(
            "Uploaded %d file(s), peak concurrency %d/%d",
            len(self._results),
            self.peak_in_flight,
            self.concurrency,
        )
        return list(self._results)

    async def run(self, paths: Iterable[Path]) -> list[UploadedFile]:
        """Submit every path, then drain."""
        for path in paths:
            self.submit(path)
        return await self.drain()
