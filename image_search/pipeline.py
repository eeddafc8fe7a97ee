from __future__ import annotations

import asyncio
import logging
from io import BytesIO
from typing import Sequence

import httpx

from image_search.cancellation import CancelToken
from image_search.config import ProcessingSettings
from image_search.errors import ImageDecodeError, OperationCancelled
from image_search.imaging import SMALL_TAG, THUMB_TAG, Derivative, render_derivatives
from image_search.models import Candidate, Failure, FailureReason, ProcessingOutcome, Success
from image_search.storage import StorageSink

LOGGER = logging.getLogger(__name__)


def _describe(exc: BaseException) -> str:
    return f"{type(exc).__name__}: {exc}"


class ImagePipeline:
    """Download, resize and store search candidates with bounded parallelism.

    A fixed pool of ``concurrency_limit`` workers drains a queue of candidates.
    Every candidate yields exactly one outcome; a failing item is recorded as a
    :class:`Failure` and never affects its siblings.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        storage: StorageSink,
        settings: ProcessingSettings | None = None,
    ) -> None:
        self.client = client
        self.storage = storage
        self.settings = settings or ProcessingSettings()

    @property
    def sizes(self) -> dict[str, int]:
        return {
            SMALL_TAG: self.settings.small_dimension,
            THUMB_TAG: self.settings.thumbnail_dimension,
        }

    async def process(
        self,
        candidates: Sequence[Candidate],
        concurrency_limit: int | None = None,
        cancel: CancelToken | None = None,
    ) -> list[ProcessingOutcome]:
        """Process every candidate; the result order is completion order.

        Raises OperationCancelled if the token is already set (no item runs)
        or was set while items were running (the exception carries the
        collected outcomes, still one per candidate).
        """
        cancel = cancel or CancelToken()
        cancel.raise_if_cancelled()

        limit = concurrency_limit if concurrency_limit and concurrency_limit > 0 else self.settings.max_concurrency

        queue: asyncio.Queue[Candidate] = asyncio.Queue()
        for cand in candidates:
            queue.put_nowait(cand)

        # Workers share one event loop, so appends never interleave.
        outcomes: list[ProcessingOutcome] = []

        async def worker() -> None:
            while True:
                try:
                    cand = queue.get_nowait()
                except asyncio.QueueEmpty:
                    return

                outcomes.append(await self._process_one(cand, cancel))
                queue.task_done()

        workers = max(1, min(limit, queue.qsize()))
        tasks = [asyncio.create_task(worker()) for _ in range(workers)]
        await asyncio.gather(*tasks)

        if cancel.cancelled:
            raise OperationCancelled("Image processing was cancelled", outcomes=outcomes)
        return outcomes

    async def _process_one(self, cand: Candidate, cancel: CancelToken) -> ProcessingOutcome:
        if cancel.cancelled:
            LOGGER.info("Processing cancelled for %s", cand.id)
            return self._failure(cand, FailureReason.CANCELLED, "Processing cancelled")

        try:
            data = await cancel.guard(self._download(cand.source_url))
        except OperationCancelled:
            LOGGER.info("Download cancelled for %s", cand.id)
            return self._failure(cand, FailureReason.CANCELLED, "Processing cancelled")
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            return self._failure(cand, FailureReason.NETWORK, _describe(exc))

        try:
            derivatives = await asyncio.to_thread(render_derivatives, data, self.sizes)
        except ImageDecodeError as exc:
            return self._failure(cand, FailureReason.DECODE, str(exc))

        try:
            urls = await self._store_all(cand.id, derivatives)
        except Exception as exc:  # noqa: BLE001
            return self._failure(cand, FailureReason.STORAGE, _describe(exc))

        return Success(
            id=cand.id,
            small_url=urls[SMALL_TAG],
            thumb_url=urls[THUMB_TAG],
            alt_text=cand.alt_text,
            description=cand.description,
        )

    async def _download(self, url: str) -> bytes:
        resp = await self.client.get(url, follow_redirects=True)
        resp.raise_for_status()
        return resp.content

    async def _store_all(self, image_id: str, derivatives: list[Derivative]) -> dict[str, str]:
        """Persist every derivative or none of them."""
        saved: list[str] = []
        urls: dict[str, str] = {}
        try:
            for derivative in derivatives:
                name = f"{image_id}_{derivative.tag}"
                urls[derivative.tag] = await self.storage.save(BytesIO(derivative.data), name)
                saved.append(name)
        except Exception:
            await self._rollback(saved)
            raise
        return urls

    async def _rollback(self, names: list[str]) -> None:
        for name in names:
            try:
                await self.storage.delete(name)
            except Exception as exc:  # noqa: BLE001
                LOGGER.warning("Rollback of %s failed: %s", name, _describe(exc))

    @staticmethod
    def _failure(cand: Candidate, reason: FailureReason, message: str) -> Failure:
        return Failure(id=cand.id, reason=reason, message=message or reason.value, source_url=cand.source_url)
