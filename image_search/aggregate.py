from __future__ import annotations

import logging
from typing import Iterable, Protocol

from image_search.models import Failure, ProcessingOutcome, SearchOutcome, Success
from image_search.time_utils import utc_timestamp_str

LOGGER = logging.getLogger(__name__)


class FailureLog(Protocol):
    def append(self, data: dict) -> None:
        ...


def summarize(
    query: str,
    outcomes: Iterable[ProcessingOutcome],
    failed_logger: FailureLog | None = None,
) -> SearchOutcome:
    """Reduce outcomes to counts plus the successes-only visible list.

    Failure details stop here: they go to the log (and the optional JSONL
    failure log) but never into the returned SearchOutcome.
    """
    successes: list[Success] = []
    failed = 0
    for outcome in outcomes:
        if isinstance(outcome, Success):
            successes.append(outcome)
            continue

        failed += 1
        _record_failure(outcome, failed_logger)

    return SearchOutcome(
        query=query,
        total_processed=len(successes),
        total_failed=failed,
        visible_results=tuple(successes),
    )


def _record_failure(failure: Failure, failed_logger: FailureLog | None) -> None:
    LOGGER.warning("Failed to process %s [%s]: %s", failure.id, failure.reason.value, failure.message)
    if failed_logger is None:
        return
    failed_logger.append(
        {
            "time_utc": utc_timestamp_str(),
            "id": failure.id,
            "url": failure.source_url,
            "reason": failure.reason.value,
            "detail": failure.message,
        }
    )
