from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Union


@dataclass(frozen=True, slots=True)
class Candidate:
    id: str
    source_url: str
    alt_text: str | None = None
    description: str | None = None


class FailureReason(str, Enum):
    NETWORK = "NETWORK"
    DECODE = "DECODE"
    STORAGE = "STORAGE"
    CANCELLED = "CANCELLED"


@dataclass(frozen=True, slots=True)
class Success:
    id: str
    small_url: str
    thumb_url: str
    alt_text: str | None = None
    description: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "imageId": self.id,
            "altDescription": self.alt_text,
            "description": self.description,
            "smallImageUrl": self.small_url,
            "thumbnailUrl": self.thumb_url,
        }


@dataclass(frozen=True, slots=True)
class Failure:
    id: str
    reason: FailureReason
    message: str
    source_url: str | None = None


ProcessingOutcome = Union[Success, Failure]


@dataclass(frozen=True, slots=True)
class SearchOutcome:
    query: str
    total_processed: int
    total_failed: int
    visible_results: tuple[Success, ...]

    def to_dict(self) -> dict[str, Any]:
        return {
            "searchQuery": self.query,
            "totalProcessed": self.total_processed,
            "totalFailed": self.total_failed,
            "processedImages": [item.to_dict() for item in self.visible_results],
        }
