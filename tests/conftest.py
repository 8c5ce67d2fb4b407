"""
Pytest configuration and shared fixtures.

The Jikan API is replaced by an in-memory catalog served through
``httpx.MockTransport`` so no test touches the network.
"""

import re
from collections.abc import AsyncGenerator
from typing import Any

import httpx
import pytest
import pytest_asyncio

from app.services.jikan.client import JikanClient
from app.services.jikan.service import JikanService
from app.services.request_queue import RequestQueue

JIKAN_TEST_URL = "https://jikan.test/v4"

GENRE_IDS = {"Action": 1, "Adventure": 2, "Comedy": 4, "Drama": 8, "Fantasy": 10, "Romance": 22, "Horror": 14}


def make_entry(mal_id: int, title: str, genres: tuple[str, ...] = ("Action",), **extra: Any) -> dict[str, Any]:
    """Build a Jikan-shaped catalog entry."""
    entry = {
        "mal_id": mal_id,
        "title": title,
        "type": "Manga",
        "genres": [{"mal_id": GENRE_IDS[g], "name": g} for g in genres],
        "authors": [{"name": f"Author {mal_id}"}],
        "studios": [{"name": f"Studio {mal_id}"}],
        "synopsis": f"Synopsis of {title}",
        "images": {"jpg": {"image_url": f"https://cdn.test/{mal_id}.jpg"}},
        "url": f"https://myanimelist.net/entry/{mal_id}",
        "score": 8.0,
        "chapters": 100,
        "episodes": 24,
    }
    entry.update(extra)
    return entry


def rec_entry(mal_id: int, title: str, votes: int = 10) -> dict[str, Any]:
    """Build an item of a /recommendations response."""
    return {"entry": {"mal_id": mal_id, "title": title}, "votes": votes}


class FakeJikan:
    """In-memory stand-in for the Jikan v4 endpoints the service uses."""

    def __init__(self):
        self.search: dict[tuple[str, str], list[dict]] = {}
        self.ranked: dict[tuple[str, str], list[dict]] = {}
        self.by_genre: dict[tuple[str, int], list[dict]] = {}
        self.recommendations: dict[tuple[str, int], list[dict]] = {}
        self.details: dict[tuple[str, int], dict] = {}
        self.top: dict[str, list[dict]] = {}
        self.failing: set[str] = set()
        self.requests: list[tuple[str, dict[str, str]]] = []

    def add_details(self, media: str, *entries: dict[str, Any]):
        for entry in entries:
            self.details[(media, entry["mal_id"])] = entry

    def fail(self, path: str):
        """Make ``path`` (relative to /v4, e.g. "/manga/5") answer HTTP 500."""
        self.failing.add(path)

    def _resolve(self, path: str, params: dict[str, str]) -> Any:
        if match := re.fullmatch(r"/top/(\w+)", path):
            limit = int(params.get("limit", 25))
            return self.top.get(match.group(1), [])[:limit]
        if match := re.fullmatch(r"/(\w+)/(\d+)/recommendations", path):
            return self.recommendations.get((match.group(1), int(match.group(2))), [])
        if match := re.fullmatch(r"/(\w+)/(\d+)", path):
            return self.details.get((match.group(1), int(match.group(2))))
        if match := re.fullmatch(r"/(\w+)", path):
            media = match.group(1)
            limit = int(params.get("limit", 25))
            if "genres" in params:
                return self.by_genre.get((media, int(params["genres"])), [])[:limit]
            if params.get("order_by") == "score":
                return self.ranked.get((media, params.get("q", "")), [])[:limit]
            return self.search.get((media, params.get("q", "")), [])[:limit]
        return None

    def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path.removeprefix("/v4")
        params = dict(request.url.params)
        self.requests.append((path, params))

        if path in self.failing:
            return httpx.Response(500, json={"status": 500, "message": "upstream 500"})

        data = self._resolve(path, params)
        if data is None:
            return httpx.Response(404, json={"status": 404, "message": "Resource does not exist"})
        return httpx.Response(200, json={"data": data})


@pytest.fixture
def fake_jikan() -> FakeJikan:
    return FakeJikan()


@pytest_asyncio.fixture
async def request_queue() -> AsyncGenerator[RequestQueue, None]:
    queue = RequestQueue(delay=0.0, job_timeout=5.0)
    yield queue
    await queue.close()


@pytest_asyncio.fixture
async def jikan_service(fake_jikan: FakeJikan, request_queue: RequestQueue) -> AsyncGenerator[JikanService, None]:
    client = JikanClient(base_url=JIKAN_TEST_URL, max_retries=1, transport=httpx.MockTransport(fake_jikan.handler))
    service = JikanService(client=client, queue=request_queue)
    yield service
    await service.close()
