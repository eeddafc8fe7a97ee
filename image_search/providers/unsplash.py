from __future__ import annotations

import logging
import math
from datetime import timedelta
from email.utils import parsedate_to_datetime
from typing import Any

import httpx

from image_search.cancellation import CancelToken
from image_search.config import UnsplashSettings
from image_search.errors import OperationCancelled, RateLimitExceededError, UpstreamServiceError
from image_search.models import Candidate
from image_search.time_utils import now_utc

LOGGER = logging.getLogger(__name__)

RATE_LIMIT_FALLBACK_HINT = "Please try again later (free tier: 50 requests/hour)"


def parse_retry_after(headers: httpx.Headers) -> timedelta | None:
    """Read a Retry-After hint as relative seconds or an absolute HTTP date."""
    raw = (headers.get("retry-after") or "").strip()
    if not raw:
        return None

    try:
        return timedelta(seconds=max(0, int(raw)))
    except OverflowError:
        return None
    except ValueError:
        pass

    try:
        resume_at = parsedate_to_datetime(raw)
    except (TypeError, ValueError):
        return None
    if resume_at is None:
        return None
    if resume_at.tzinfo is None:
        resume_at = resume_at.replace(tzinfo=now_utc().tzinfo)
    return max(timedelta(0), resume_at - now_utc())


def rate_limit_message(retry_after: timedelta | None) -> str:
    if retry_after is None:
        hint = RATE_LIMIT_FALLBACK_HINT
    else:
        minutes = math.floor(retry_after.total_seconds() / 60 + 0.5)
        hint = f"Please try again in {minutes} minutes"
    return f"Unsplash API rate limit exceeded. {hint}"


def _optional_str(value: Any) -> str | None:
    return value if isinstance(value, str) else None


def parse_candidates(data: Any) -> list[Candidate]:
    if not isinstance(data, dict):
        raise UpstreamServiceError("Malformed search response: expected a JSON object")

    results = data.get("results")
    if results is None:
        return []
    if not isinstance(results, list):
        raise UpstreamServiceError("Malformed search response: 'results' is not a list")

    candidates: list[Candidate] = []
    seen: set[str] = set()
    for item in results:
        if not isinstance(item, dict):
            raise UpstreamServiceError("Malformed search response: result is not an object")
        photo_id = item.get("id")
        urls = item.get("urls")
        raw_url = urls.get("raw") if isinstance(urls, dict) else None
        if not isinstance(photo_id, str) or not photo_id or not isinstance(raw_url, str) or not raw_url:
            raise UpstreamServiceError("Malformed search response: result without id or urls.raw")
        if photo_id in seen:
            continue
        seen.add(photo_id)
        candidates.append(
            Candidate(
                id=photo_id,
                source_url=raw_url,
                alt_text=_optional_str(item.get("alt_description")),
                description=_optional_str(item.get("description")),
            )
        )
    return candidates


class UnsplashSearchClient:
    name = "unsplash"
    endpoint = "search/photos"

    def __init__(self, client: httpx.AsyncClient, settings: UnsplashSettings) -> None:
        if not settings.api_key:
            raise ValueError("UNSPLASH_ACCESS_KEY is missing")
        self.client = client
        self.settings = settings

    async def search(self, query: str, limit: int, cancel: CancelToken | None = None) -> list[Candidate]:
        cancel = cancel or CancelToken()
        cancel.raise_if_cancelled()

        params = {
            "client_id": self.settings.api_key,
            "page": 1,
            "per_page": limit,
            "query": query,
        }
        try:
            resp = await cancel.guard(self.client.get(self.endpoint, params=params))
        except OperationCancelled:
            LOGGER.info("Search for %r cancelled", query)
            raise
        except httpx.HTTPError as exc:
            LOGGER.error("Network error calling Unsplash API: %s: %s", type(exc).__name__, exc)
            raise UpstreamServiceError("Failed to reach image search service") from exc

        if not resp.is_success:
            LOGGER.warning("Unsplash API returned %d: %s", resp.status_code, resp.text[:500])
            if resp.status_code == 429:
                retry_after = parse_retry_after(resp.headers)
                raise RateLimitExceededError(rate_limit_message(retry_after), retry_after)
            raise UpstreamServiceError(f"API error: {resp.status_code}", status_code=resp.status_code)

        try:
            data = resp.json()
        except ValueError as exc:
            raise UpstreamServiceError("Malformed search response: body is not JSON") from exc

        candidates = parse_candidates(data)
        LOGGER.info("Unsplash returned %d candidate(s) for %r", len(candidates), query)
        return candidates
