"""Shared fixtures: record builders and a scriptable backend client."""

import asyncio
from collections import deque
from typing import Any, List, Optional

import pytest

from propmap.mapping.drawing import InMemoryDrawingTool
from propmap.mapping.headless_surface import HeadlessSurface
from propmap.models.schemas import PropertyRecord


def make_record(id="1", title="A", price=None, lon=0.0, lat=0.0) -> PropertyRecord:
    return PropertyRecord(
        id=id,
        title=title,
        price=price,
        location={"type": "Point", "coordinates": [lon, lat]},
    )


def square(lon=0.0, lat=0.0, size=1.0) -> dict:
    """Closed square polygon with its south-west corner at (lon, lat)."""
    return {
        "type": "Polygon",
        "coordinates": [
            [
                [lon, lat],
                [lon + size, lat],
                [lon + size, lat + size],
                [lon, lat + size],
                [lon, lat],
            ]
        ],
    }


class FakeClient:
    """
    Stands in for SpatialQueryClient.

    Queued responses are consumed in call order; each is a list of
    records, an exception to raise, or an asyncio.Future to await first.
    When a queue is empty the default records are returned.
    """

    def __init__(self, all_records=None, search_records=None):
        self.all_records: List[PropertyRecord] = list(all_records or [])
        self.search_records: List[PropertyRecord] = list(search_records or [])
        self.all_responses: deque = deque()
        self.search_responses: deque = deque()
        self.calls: List[tuple] = []
        self.closed = False

    async def _resolve(self, response: Any) -> List[PropertyRecord]:
        if isinstance(response, asyncio.Future):
            response = await response
        if isinstance(response, BaseException):
            raise response
        return list(response)

    async def fetch_all(self) -> List[PropertyRecord]:
        self.calls.append(("fetch_all",))
        response = self.all_responses.popleft() if self.all_responses else self.all_records
        return await self._resolve(response)

    async def fetch_within(self, polygon) -> List[PropertyRecord]:
        self.calls.append(("fetch_within", polygon))
        response = self.search_responses.popleft() if self.search_responses else self.search_records
        return await self._resolve(response)

    def count(self, name: str) -> int:
        return sum(1 for c in self.calls if c[0] == name)

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture
def all_records():
    return [
        make_record("1", "Harbour Loft", 100, 0.0, 0.0),
        make_record("2", "Garden Flat", None, 1.0, 1.0),
        make_record("3", "Mill House", 250000, 100.0, 40.0),
    ]


@pytest.fixture
def fake_client(all_records):
    return FakeClient(all_records=all_records, search_records=all_records[:1])


@pytest.fixture
def surface():
    return HeadlessSurface()


@pytest.fixture
def drawing_tool():
    return InMemoryDrawingTool()
