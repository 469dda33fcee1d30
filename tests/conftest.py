"""
Shared fixtures: a throwaway sqlite file per test and a canned catalog.
"""
from typing import Dict, List, Tuple

import pytest
from fastapi.testclient import TestClient

from whatsong.config import Settings
from whatsong.errors import InvalidMetadata
from whatsong.main import create_app
from whatsong.storage.db import EventStore
from whatsong.youtube.client import VideoInfo


class FakeCatalog:
    """Stands in for YoutubeClient; records every lookup."""

    def __init__(self, videos: Dict[str, Tuple[str, int]] = None):
        self.videos = dict(videos or {})
        self.calls: List[str] = []

    def fetch(self, video_id: str) -> VideoInfo:
        self.calls.append(video_id)
        if video_id not in self.videos:
            raise InvalidMetadata(video_id)
        title, duration = self.videos[video_id]
        return VideoInfo(title=title, duration_seconds=duration)


VIDEOS = {
    "dQw4w9WgXcQ": ("Never Gonna Give You Up", 213),
    "9bZkp7q19f0": ("Gangnam Style", 253),
    "kJQP7kiw5Fk": ("Despacito", 282),
}


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(db_path=tmp_path / "videos.db", youtube_api_key="test-key")


@pytest.fixture
def catalog() -> FakeCatalog:
    return FakeCatalog(VIDEOS)


@pytest.fixture
def store(settings, catalog) -> EventStore:
    s = EventStore(settings.db_path, catalog, supported_version=settings.supported_version)
    s.init_db()
    return s


@pytest.fixture
def client(settings, catalog):
    app = create_app(settings, resolver=catalog)
    with TestClient(app) as c:
        yield c
