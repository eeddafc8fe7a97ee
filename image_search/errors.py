from __future__ import annotations

from datetime import timedelta
from typing import Iterable, TYPE_CHECKING

if TYPE_CHECKING:
    from image_search.models import ProcessingOutcome


class ImageSearchError(Exception):
    pass


class RateLimitExceededError(ImageSearchError):
    def __init__(self, message: str, retry_after: timedelta | None = None) -> None:
        super().__init__(message)
        self.retry_after = retry_after


class UpstreamServiceError(ImageSearchError):
    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class OperationCancelled(ImageSearchError):
    """Raised when a whole search/process call is cancelled.

    ``outcomes`` holds whatever per-item outcomes were collected before the
    workers drained; it is empty when cancellation happened before any item
    started.
    """

    def __init__(
        self,
        message: str = "The operation was cancelled",
        outcomes: Iterable["ProcessingOutcome"] = (),
    ) -> None:
        super().__init__(message)
        self.outcomes: tuple["ProcessingOutcome", ...] = tuple(outcomes)


class StorageError(ImageSearchError):
    pass


class InvalidNameError(StorageError, ValueError):
    pass


class ImageDecodeError(ImageSearchError):
    pass
