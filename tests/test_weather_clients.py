"""Tests for the OpenWeather client and payload parsing."""

import httpx
import pytest

from skycast.errors import FetchError, NotFoundError, ParseError
from skycast.schemas import Coordinates
from skycast.weather_clients import (
    OpenWeatherClient,
    icon_url,
    parse_candidates,
    parse_current,
    parse_forecast,
)
from tests.conftest import BASE_TIME_MS, current_payload, forecast_item, forecast_payload, run


def make_client(handler):
    return OpenWeatherClient("test_key", transport=httpx.MockTransport(handler))


class TestOpenWeatherClient:
    def test_fetch_current_by_city(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json=current_payload())

        data = run(make_client(handler).fetch_current(city="Paris"))

        assert data["name"] == "Paris"
        url = seen[0].url
        assert url.path == "/data/2.5/weather"
        assert url.params["q"] == "Paris"
        assert url.params["units"] == "metric"
        assert url.params["appid"] == "test_key"

    def test_fetch_current_by_coords(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json=current_payload())

        run(make_client(handler).fetch_current(coords=Coordinates(lat=48.85, lon=2.35)))

        params = seen[0].url.params
        assert params["lat"] == "48.85"
        assert params["lon"] == "2.35"
        assert "q" not in params

    def test_fetch_current_needs_exactly_one_target(self):
        client = make_client(lambda request: httpx.Response(200, json={}))
        with pytest.raises(ValueError):
            run(client.fetch_current())
        with pytest.raises(ValueError):
            run(client.fetch_current(city="Paris", coords=Coordinates(lat=0, lon=0)))

    def test_fetch_forecast(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json=forecast_payload([]))

        run(make_client(handler).fetch_forecast("Paris"))
        assert seen[0].url.path == "/data/2.5/forecast"
        assert seen[0].url.params["q"] == "Paris"

    def test_search_cities(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json=[{"name": "Paris", "country": "FR", "lat": 48.85, "lon": 2.35}])

        results = run(make_client(handler).search_cities("Paris"))
        assert results[0]["name"] == "Paris"
        assert seen[0].url.path == "/geo/1.0/direct"
        assert seen[0].url.params["limit"] == "5"

    def test_404_is_not_found(self):
        def handler(request):
            return httpx.Response(404, json={"cod": "404", "message": "city not found"})

        with pytest.raises(NotFoundError, match="city not found") as exc:
            run(make_client(handler).fetch_current(city="Atlantis"))
        assert exc.value.status_code == 404

    def test_server_error_is_fetch_error(self):
        def handler(request):
            return httpx.Response(503, text="Service Unavailable")

        with pytest.raises(FetchError) as exc:
            run(make_client(handler).fetch_forecast("Paris"))
        assert exc.value.status_code == 503
        assert not isinstance(exc.value, NotFoundError)

    def test_unauthorized_is_fetch_error(self):
        def handler(request):
            return httpx.Response(401, json={"cod": 401, "message": "Invalid API key"})

        with pytest.raises(FetchError, match="Invalid API key"):
            run(make_client(handler).fetch_current(city="Paris"))

    def test_network_error_is_fetch_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(FetchError, match="connection refused"):
            run(make_client(handler).fetch_current(city="Paris"))

    def test_non_json_body(self):
        def handler(request):
            return httpx.Response(200, text="<html>oops</html>")

        with pytest.raises(ParseError):
            run(make_client(handler).fetch_current(city="Paris"))


class TestParsing:
    def test_parse_current(self):
        snap = parse_current(current_payload(temp=-2.5), captured_at_epoch_ms=BASE_TIME_MS)
        assert snap.temperature == -3
        assert snap.captured_at_epoch_ms == BASE_TIME_MS
        assert snap.utc_offset_seconds == 7200

    def test_parse_current_missing_weather(self):
        payload = current_payload()
        payload["weather"] = []
        with pytest.raises(ParseError, match="weather.0.description"):
            parse_current(payload, BASE_TIME_MS)

    def test_parse_current_non_numeric_temp(self):
        payload = current_payload()
        payload["main"]["temp"] = "warm"
        with pytest.raises(ParseError, match="non-numeric"):
            parse_current(payload, BASE_TIME_MS)

    def test_parse_current_without_country(self):
        payload = current_payload()
        del payload["sys"]
        assert parse_current(payload, BASE_TIME_MS).country_code == ""

    @pytest.mark.parametrize("offset", ["abc", {"x": 1}, float("nan")])
    def test_parse_current_bad_timezone(self, offset):
        with pytest.raises(ParseError, match="timezone"):
            parse_current(current_payload(timezone=offset), BASE_TIME_MS)

    def test_parse_current_null_timezone(self):
        assert parse_current(current_payload(timezone=None), BASE_TIME_MS).utc_offset_seconds is None

    def test_parse_current_sys_not_an_object(self):
        with pytest.raises(ParseError, match="sys"):
            parse_current(current_payload(sys=["FR"]), BASE_TIME_MS)

    @pytest.mark.parametrize("value", [float("nan"), float("inf"), float("-inf")])
    def test_parse_current_non_finite_temp(self, value):
        payload = current_payload()
        payload["main"]["temp"] = value
        with pytest.raises(ParseError, match="non-finite"):
            parse_current(payload, BASE_TIME_MS)

    def test_parse_current_not_an_object(self):
        with pytest.raises(ParseError):
            parse_current(["not", "a", "dict"], BASE_TIME_MS)

    def test_parse_forecast(self):
        name, offset, samples = parse_forecast(forecast_payload([forecast_item(100, temp=3.5)], timezone=-18000))
        assert (name, offset) == ("Paris", -18000)
        assert samples[0].timestamp_utc == 100
        assert samples[0].temp == 4

    def test_parse_forecast_bad_timezone(self):
        with pytest.raises(ParseError, match="city.timezone"):
            parse_forecast(forecast_payload([forecast_item(0)], timezone="abc"))

    def test_parse_forecast_without_timezone(self):
        payload = forecast_payload([forecast_item(0)])
        del payload["city"]["timezone"]
        assert parse_forecast(payload)[1] is None

    def test_parse_forecast_non_finite_step(self):
        with pytest.raises(ParseError, match="step 0"):
            parse_forecast(forecast_payload([forecast_item(0, temp_max=float("nan"))]))

    def test_parse_forecast_bad_step(self):
        item = forecast_item(100)
        del item["weather"]
        with pytest.raises(ParseError, match="step 1"):
            parse_forecast(forecast_payload([forecast_item(0), item]))

    def test_parse_candidates(self):
        candidates = parse_candidates([
            {"name": "Portland", "country": "US", "state": "Oregon", "lat": 45.5, "lon": -122.7},
            {"name": "Portland", "country": "US", "lat": 43.7, "lon": -70.3},
        ])
        assert [c.state for c in candidates] == ["Oregon", ""]
        assert candidates[1].lat == 43.7

    def test_parse_candidates_missing_coords(self):
        with pytest.raises(ParseError, match="lat"):
            parse_candidates([{"name": "Nowhere"}])


def test_icon_url():
    assert icon_url("04d") == "https://openweathermap.org/img/wn/04d@2x.png"


def test_nan_in_response_body_is_parse_error():
    body = (
        '{"main": {"temp": NaN, "feels_like": 1, "temp_min": 1, "temp_max": 1, "pressure": 1000, "humidity": 50},'
        ' "weather": [{"description": "mist", "icon": "50d"}], "wind": {"speed": 1},'
        ' "sys": {"country": "FR"}, "timezone": 0, "name": "Paris"}'
    )

    def handler(request):
        return httpx.Response(200, text=body, headers={"content-type": "application/json"})

    data = run(make_client(handler).fetch_current(city="Paris"))
    with pytest.raises(ParseError, match="main.temp"):
        parse_current(data, BASE_TIME_MS)
