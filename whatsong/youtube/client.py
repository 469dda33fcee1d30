from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict

import requests

from whatsong.config import Settings
from whatsong.errors import InvalidMetadata, MetadataUnavailable
from whatsong.youtube.duration import parse_duration

logger = logging.getLogger(__name__)

PARTS = "snippet,contentDetails"
FIELDS = "items(id,snippet(title),contentDetails(duration))"


@dataclass(frozen=True)
class VideoInfo:
    title: str
    duration_seconds: int


class YoutubeClient:
    """
    Title/duration lookup against the YouTube Data API `videos` endpoint.

    One GET per call, bounded by settings.metadata_timeout_s, never retried.
    """

    def __init__(self, settings: Settings, session: requests.Session | None = None):
        self.api_url = settings.youtube_api_url
        self.api_key = settings.youtube_api_key
        self.timeout_s = settings.metadata_timeout_s
        self._http = session or requests

    def _get(self, video_id: str) -> Dict[str, Any]:
        params = {
            "id": video_id,
            "part": PARTS,
            "fields": FIELDS,
            "key": self.api_key,
        }
        try:
            r = self._http.get(self.api_url, params=params, timeout=self.timeout_s)
            r.raise_for_status()
            return r.json() or {}
        except requests.Timeout:
            raise MetadataUnavailable(f"timed out after {self.timeout_s}s") from None
        except requests.HTTPError as ex:
            resp = getattr(ex, "response", None)
            status = resp.status_code if resp is not None else "?"
            raise MetadataUnavailable(f"http status {status}") from ex
        except requests.RequestException as ex:
            raise MetadataUnavailable(str(ex)) from ex
        except ValueError as ex:
            # body was not json
            raise MetadataUnavailable(f"undecodable response: {ex}") from ex

    def fetch(self, video_id: str) -> VideoInfo:
        data = self._get(video_id)

        items = data.get("items") if isinstance(data, dict) else None
        if not items or not isinstance(items, list):
            logger.warning("catalog returned no items for %s", video_id)
            raise InvalidMetadata(video_id)

        item = items[0]
        snippet = item.get("snippet") if isinstance(item, dict) else None
        title = snippet.get("title") if isinstance(snippet, dict) else None
        if not isinstance(title, str) or not title.strip():
            logger.warning("catalog item for %s has no usable title", video_id)
            raise InvalidMetadata(video_id)

        details = item.get("contentDetails")
        raw_duration = details.get("duration") if isinstance(details, dict) else None
        info = VideoInfo(title=title.strip(), duration_seconds=parse_duration(raw_duration))
        logger.debug("resolved %s -> %r (%ss)", video_id, info.title, info.duration_seconds)
        return info
