"""Tests for the Mapbox static snapshot client."""

import httpx
import pytest

from propmap.mapping.mapbox_client import MapboxClient

PNG = b"\x89PNG\r\n\x1a\nfake"


def _point(lon, lat):
    return {
        "type": "Feature",
        "properties": {"id": f"{lon},{lat}", "title": "Somewhere", "price": 1},
        "geometry": {"type": "Point", "coordinates": [lon, lat]},
    }


def _cluster(lon, lat, count):
    return {
        "type": "Feature",
        "id": 1,
        "properties": {"cluster": True, "cluster_id": 1, "point_count": count},
        "geometry": {"type": "Point", "coordinates": [lon, lat]},
    }


def make_client(status=200, content=PNG, content_type="image/png", requests=None):
    def handler(request):
        if requests is not None:
            requests.append(request)
        return httpx.Response(status, content=content, headers={"content-type": content_type})

    http_client = httpx.Client(transport=httpx.MockTransport(handler))
    return MapboxClient(access_token="pk.test", http_client=http_client)


class TestRenderSnapshot:
    def test_small_set_uses_geojson(self, tmp_path):
        requests = []
        output = tmp_path / "maps" / "snapshot.png"
        with make_client(requests=requests) as client:
            result = client.render_snapshot(
                [_point(0, 0), _point(1, 1)], [], output_path=str(output)
            )

        assert result.success
        assert result.strategy_used == "geojson"
        assert result.features_rendered == 2
        assert output.read_bytes() == PNG
        url = str(requests[0].url)
        assert "geojson(" in url
        assert "access_token=pk.test" in url
        assert "auto/800x450@2x" in url

    def test_data_properties_not_sent(self):
        requests = []
        with make_client(requests=requests) as client:
            client.render_snapshot([_point(0, 0)], [])
        assert "Somewhere" not in str(requests[0].url)

    def test_camera_viewport(self):
        requests = []
        with make_client(requests=requests) as client:
            client.render_snapshot(
                [_point(0, 0)], [], center=(-40.0, 25.0), zoom=2.0, retina=False
            )
        assert "/-40.0,25.0,2.0/800x450?" in str(requests[0].url)

    def test_large_set_falls_back_to_markers(self):
        requests = []
        points = [_point(i * 0.001234567, i * 0.007654321) for i in range(200)]
        rendered = [_cluster(0.1, 0.7, 150), _cluster(10.0, 10.0, 50)]
        with make_client(requests=requests) as client:
            result = client.render_snapshot(points, rendered)

        assert result.success
        assert result.strategy_used == "clustered"
        assert result.features_rendered == 200
        url = str(requests[0].url)
        assert "pin-s+2563eb" in url
        assert "pin-s-50+2563eb" in url

    def test_too_many_markers_gives_up_without_request(self):
        requests = []
        points = [_point(i * 0.001234567, i * 0.007654321) for i in range(400)]
        with make_client(requests=requests) as client:
            result = client.render_snapshot(points, points)

        assert not result.success
        assert result.strategy_used == "none"
        assert result.image_url is None
        assert result.url_length > MapboxClient.MAX_URL_LENGTH
        assert requests == []

    def test_timeout(self):
        def handler(request):
            raise httpx.ReadTimeout("slow", request=request)

        with MapboxClient(
            access_token="pk.test",
            http_client=httpx.Client(transport=httpx.MockTransport(handler)),
        ) as client:
            result = client.render_snapshot([_point(0, 0)], [])

        assert not result.success
        assert result.strategy_used == "geojson"
        assert result.error_message == "Request timed out"
        assert result.url_length == len(result.image_url)

    def test_no_features(self):
        with make_client() as client:
            result = client.render_snapshot([], [])
        assert not result.success
        assert result.strategy_used == "none"

    def test_unauthorized(self):
        with make_client(status=401, content=b'{"message":"Not Authorized"}') as client:
            result = client.render_snapshot([_point(0, 0)], [])
        assert not result.success
        assert result.error_message.startswith("HTTP 401")

    def test_non_image_response(self):
        with make_client(content=b"{}", content_type="application/json") as client:
            result = client.render_snapshot([_point(0, 0)], [])
        assert not result.success
        assert "Unexpected content type" in result.error_message

    def test_transport_error(self):
        def handler(request):
            raise httpx.ConnectError("offline")

        client = MapboxClient(
            access_token="pk.test",
            http_client=httpx.Client(transport=httpx.MockTransport(handler)),
        )
        result = client.render_snapshot([_point(0, 0)], [])
        client.close()
        assert not result.success
        assert "offline" in result.error_message
