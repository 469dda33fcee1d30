from __future__ import annotations

from typing import Any, Dict


class WhatsongError(Exception):
    """
    Base for every failure the core reports.

    code: stable machine-readable identifier rendered as {"error": code}
    status_code: HTTP status the API layer maps this failure to
    """

    code = "error"
    status_code = 500

    def details(self) -> Dict[str, Any]:
        return {}

    def as_payload(self) -> Dict[str, Any]:
        return {"error": self.code, "message": str(self), **self.details()}


# ---------------------------------------------------------
# Client input
# ---------------------------------------------------------
class UnsupportedVersion(WhatsongError):
    code = "invalid_version"
    status_code = 406

    def __init__(self, expected: int, got: int):
        self.expected = expected
        self.got = got
        super().__init__(f"invalid item version: expected: {expected}, got: {got}")

    def details(self) -> Dict[str, Any]:
        return {"expected": self.expected, "got": self.got}


class InvalidSourceUrl(WhatsongError):
    code = "invalid_youtube_url"
    status_code = 406

    def __init__(self, url: str):
        self.url = url
        super().__init__(f"invalid youtube url: {url}")

    def details(self) -> Dict[str, Any]:
        return {"url": self.url}


class InvalidMetadata(WhatsongError):
    code = "invalid_youtube_data"
    status_code = 406

    def __init__(self, video_id: str):
        self.video_id = video_id
        super().__init__(f"invalid youtube data for: {video_id}")

    def details(self) -> Dict[str, Any]:
        return {"video_id": self.video_id}


# ---------------------------------------------------------
# Server side
# ---------------------------------------------------------
class MetadataUnavailable(WhatsongError):
    code = "metadata_unavailable"
    status_code = 502

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"youtube catalog unavailable: {reason}")


class StorageError(WhatsongError):
    code = "storage"
    status_code = 500

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"an sql error: {reason}")


class NotFound(WhatsongError):
    code = "not_found"
    status_code = 404

    def __init__(self, what: str):
        self.what = what
        super().__init__(f"no {what} song")
