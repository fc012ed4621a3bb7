"""
Tests for the Open-Topo-Data elevation fetcher.

Covers batching, pacing between batches, order preservation and the
abort-on-failure behaviour.
"""

import pytest
import aiohttp
from unittest.mock import AsyncMock, MagicMock
from terrain_api.services.elevation_fetcher import ElevationFetcher, make_batches, normalize_elevation
from terrain_api.services.errors import UpstreamError
from terrain_api.services.grid_generator import generate_grid


def make_response(status=200, payload=None, text=""):
    response = MagicMock()
    response.status = status
    response.json = AsyncMock(return_value=payload)
    response.text = AsyncMock(return_value=text)
    context = MagicMock()
    context.__aenter__ = AsyncMock(return_value=response)
    context.__aexit__ = AsyncMock(return_value=False)
    return context


def ok_payload(elevations):
    return {"status": "OK", "results": [{"elevation": e, "dataset": "srtm90m"} for e in elevations]}


def locations_in(url):
    return url.split("locations=", 1)[1].split("|")


@pytest.fixture
def fetcher():
    fetcher = ElevationFetcher(base_url="https://elevation.test/v1", dataset="srtm90m",
                               batch_size=100, batch_delay=2.0)
    fetcher.session = MagicMock()
    return fetcher


@pytest.fixture
def mock_sleep(mocker):
    return mocker.patch("terrain_api.services.elevation_fetcher.asyncio.sleep", new_callable=AsyncMock)


# -----------------------------
# Helpers
# -----------------------------

def test_make_batches_preserves_order():
    coords = [(float(i), float(i)) for i in range(250)]
    batches = make_batches(coords, 100)

    assert [len(b) for b in batches] == [100, 100, 50]
    assert [c for batch in batches for c in batch] == coords


def test_make_batches_rejects_zero_size():
    with pytest.raises(ValueError):
        make_batches([(0.0, 0.0)], 0)


@pytest.mark.parametrize("value,expected", [
    (12, 12.0),
    (1033.5, 1033.5),
    (None, None),
    ("100", None),
    (float("nan"), None),
])
def test_normalize_elevation(value, expected):
    assert normalize_elevation(value) == expected


def test_build_url(fetcher):
    url = fetcher._build_url([(36.0, -112.0), (36.1, -112.1)])
    assert url == "https://elevation.test/v1/srtm90m?locations=36.000000,-112.000000|36.100000,-112.100000"


def test_build_url_uses_fixed_point_near_zero(fetcher):
    url = fetcher._build_url([(0.00001, -0.0000004)])
    assert url.endswith("locations=0.000010,-0.000000")
    assert "e-" not in url


# -----------------------------
# Tests for fetch_elevations
# -----------------------------

@pytest.mark.asyncio
async def test_fetch_elevations_grid_40_uses_16_sequential_batches(fetcher, mock_sleep):
    """1600 points with a bound of 100 means 16 calls and 15 pauses, none after the last."""
    coords = generate_grid(36.0544, -112.1401, 10, 40)
    events = []

    def fake_get(url):
        events.append("get")
        count = len(locations_in(url))
        assert count <= 100
        return make_response(payload=ok_payload([1000.0] * count))

    async def fake_sleep(delay):
        events.append("sleep")

    fetcher.session.get.side_effect = fake_get
    mock_sleep.side_effect = fake_sleep

    elevations = await fetcher.fetch_elevations(coords)

    assert len(elevations) == 1600
    assert fetcher.session.get.call_count == 16
    assert mock_sleep.await_count == 15
    mock_sleep.assert_awaited_with(2.0)
    assert events == ["get", "sleep"] * 15 + ["get"]


@pytest.mark.asyncio
async def test_fetch_elevations_preserves_order(fetcher, mock_sleep):
    coords = [(float(i), 0.0) for i in range(250)]

    def fake_get(url):
        locations = locations_in(url)
        return make_response(payload=ok_payload([float(loc.split(",")[0]) for loc in locations]))

    fetcher.session.get.side_effect = fake_get

    elevations = await fetcher.fetch_elevations(coords)

    assert elevations == [float(i) for i in range(250)]
    assert mock_sleep.await_count == 2


@pytest.mark.asyncio
async def test_fetch_elevations_single_batch_never_sleeps(fetcher, mock_sleep):
    fetcher.session.get.return_value = make_response(payload=ok_payload([5.0, None, 7.0]))

    elevations = await fetcher.fetch_elevations([(0.0, 0.0), (0.0, 1.0), (0.0, 2.0)])

    assert elevations == [5.0, None, 7.0]
    mock_sleep.assert_not_awaited()


@pytest.mark.asyncio
async def test_fetch_elevations_http_error_aborts(fetcher, mock_sleep):
    coords = [(0.0, float(i)) for i in range(300)]
    fetcher.session.get.side_effect = [
        make_response(payload=ok_payload([1.0] * 100)),
        make_response(status=429, text="Too Many Requests"),
        make_response(payload=ok_payload([1.0] * 100)),
    ]

    with pytest.raises(UpstreamError) as exc_info:
        await fetcher.fetch_elevations(coords)

    assert "429" in exc_info.value.message
    assert fetcher.session.get.call_count == 2


@pytest.mark.asyncio
async def test_fetch_elevations_api_status_error(fetcher, mock_sleep):
    fetcher.session.get.return_value = make_response(
        payload={"status": "INVALID_REQUEST", "error": "Too many locations provided (101), the limit is 100."}
    )

    with pytest.raises(UpstreamError) as exc_info:
        await fetcher.fetch_elevations([(0.0, 0.0)])
    assert "Too many locations" in exc_info.value.message


@pytest.mark.asyncio
async def test_fetch_elevations_partial_batch_response(fetcher, mock_sleep):
    fetcher.session.get.return_value = make_response(payload=ok_payload([1.0, 2.0]))

    with pytest.raises(UpstreamError):
        await fetcher.fetch_elevations([(0.0, 0.0), (0.0, 1.0), (0.0, 2.0)])


@pytest.mark.asyncio
async def test_fetch_elevations_transport_error(fetcher, mock_sleep):
    fetcher.session.get.side_effect = aiohttp.ClientConnectionError("connection refused")

    with pytest.raises(UpstreamError):
        await fetcher.fetch_elevations([(0.0, 0.0)])


@pytest.mark.asyncio
async def test_fetch_elevations_reports_spans(fetcher, mock_sleep):
    observer = MagicMock()
    fetcher.observer = observer
    fetcher.session.get.return_value = make_response(payload=ok_payload([1.0]))

    await fetcher.fetch_elevations([(0.0, 0.0)])

    span_names = [call.args[1] for call in observer.span.call_args_list]
    assert span_names == ["Open-Topo-Data Elevation Fetch", "Elevation Batch 1/1"]
    observer.set_tag.assert_any_call("api_service", "opentopodata")
