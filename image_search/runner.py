from __future__ import annotations

import asyncio
import contextlib
import logging
import signal
from dataclasses import dataclass
from pathlib import Path

import httpx

from image_search.aggregate import FailureLog, summarize
from image_search.cancellation import CancelToken
from image_search.config import MAX_SEARCH_RESULTS, ProcessingSettings, UnsplashSettings
from image_search.errors import OperationCancelled, RateLimitExceededError, UpstreamServiceError
from image_search.http_utils import DEFAULT_HEADERS, RetryTransport
from image_search.jsonl_logger import JsonlLogger
from image_search.models import SearchOutcome
from image_search.pipeline import ImagePipeline
from image_search.providers.unsplash import UnsplashSearchClient
from image_search.storage import FileStorage
from image_search.time_utils import utc_timestamp_str

LOGGER = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_DEGRADED = 1
EXIT_ERROR = 2


class ImageSearchService:
    """search -> process -> aggregate.

    Upstream errors (rate limit, service unavailable) propagate before any
    pipeline work starts; cancellation propagates as OperationCancelled.
    """

    def __init__(
        self,
        search_client: UnsplashSearchClient,
        pipeline: ImagePipeline,
        failed_logger: FailureLog | None = None,
    ) -> None:
        self.search_client = search_client
        self.pipeline = pipeline
        self.failed_logger = failed_logger

    async def search(
        self,
        query: str,
        limit: int = MAX_SEARCH_RESULTS,
        cancel: CancelToken | None = None,
        concurrency_limit: int | None = None,
    ) -> SearchOutcome:
        cancel = cancel or CancelToken()
        candidates = await self.search_client.search(query, limit, cancel)
        outcomes = await self.pipeline.process(candidates, concurrency_limit, cancel)
        # The failure log does file I/O; keep it off the event loop.
        return await asyncio.to_thread(summarize, query, outcomes, self.failed_logger)


@dataclass
class RunReport:
    run_ts: str
    query: str
    total_processed: int = 0
    total_failed: int = 0
    error: str | None = None


def _build_summary(report: RunReport) -> list[str]:
    lines = [
        f"--- Search Summary [{report.run_ts}] ---",
        f"query: {report.query}",
        f"processed: {report.total_processed}",
        f"failed: {report.total_failed}",
    ]
    if report.error:
        lines.append(f"error: {report.error}")
    return lines


async def run_once(
    query: str,
    *,
    limit: int = MAX_SEARCH_RESULTS,
    unsplash: UnsplashSettings,
    processing: ProcessingSettings,
    failed_log_path: Path | None = None,
    cancel: CancelToken | None = None,
) -> SearchOutcome:
    cancel = cancel or CancelToken()
    failed_logger = JsonlLogger(failed_log_path) if failed_log_path else None
    storage = FileStorage(processing.output_dir)

    loop = asyncio.get_running_loop()
    with contextlib.suppress(NotImplementedError, RuntimeError):
        loop.add_signal_handler(signal.SIGINT, cancel.cancel)

    search_transport = RetryTransport(httpx.AsyncHTTPTransport())
    try:
        async with httpx.AsyncClient(
            base_url=unsplash.base_url,
            timeout=unsplash.timeout_seconds,
            headers=DEFAULT_HEADERS,
            transport=search_transport,
        ) as search_http, httpx.AsyncClient(timeout=processing.download_timeout_seconds) as download_http:
            service = ImageSearchService(
                UnsplashSearchClient(search_http, unsplash),
                ImagePipeline(download_http, storage, processing),
                failed_logger=failed_logger,
            )
            return await service.search(query, limit, cancel)
    finally:
        with contextlib.suppress(NotImplementedError, RuntimeError):
            loop.remove_signal_handler(signal.SIGINT)


def evaluate_exit_code(report: RunReport) -> int:
    if report.error:
        return EXIT_ERROR
    if report.total_processed > 0:
        return EXIT_OK
    return EXIT_DEGRADED


def run_sync(
    query: str,
    *,
    limit: int,
    unsplash: UnsplashSettings,
    processing: ProcessingSettings,
    failed_log_path: Path | None = None,
) -> tuple[int, SearchOutcome | None]:
    """Run one search and print the batch summary. Returns (exit_code, outcome)."""
    report = RunReport(run_ts=utc_timestamp_str(), query=query)
    outcome = None
    print("[ImageSearch] Starting search...")
    try:
        outcome = asyncio.run(
            run_once(
                query,
                limit=limit,
                unsplash=unsplash,
                processing=processing,
                failed_log_path=failed_log_path,
            )
        )
        report.total_processed = outcome.total_processed
        report.total_failed = outcome.total_failed
    except RateLimitExceededError as exc:
        report.error = str(exc)
    except UpstreamServiceError as exc:
        LOGGER.error("Image search service unavailable: %s", exc)
        report.error = "Image search service unavailable, please try again after some time"
    except OperationCancelled:
        report.error = "The request was cancelled"
    except ValueError as exc:
        report.error = str(exc)
    except Exception as exc:  # noqa: BLE001
        print(f"[ImageSearch] Fatal error: {type(exc).__name__}: {exc}")
        return EXIT_ERROR, None

    print("\n".join(_build_summary(report)))
    exit_code = evaluate_exit_code(report)
    print(f"[ImageSearch] Finished with exit={exit_code}.")
    return exit_code, outcome
