"""Tests for the dashboard JSON API and price WebSocket.

Services are real but never connect anywhere: the REST client is mocked and
the websocket connect is a fake that stays open without sending frames.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from marketdesk.config import AppSettings
from marketdesk.dashboard.app import create_dashboard_app
from marketdesk.market_data.service import MarketDataService
from marketdesk.momentum.service import MomentumService


@pytest.fixture
def client(mock_settings: AppSettings, fake_connect_factory):
    exchange = AsyncMock()
    exchange.fetch_tickers = AsyncMock(return_value={})
    exchange.fetch_ohlcv = AsyncMock(return_value=[[0, 1, 2, 0.5, 1.5, 10]])
    exchange.timeframe_ms = MagicMock(return_value=3_600_000)

    market_data = MarketDataService(
        exchange,
        mock_settings.stream,
        mock_settings.throttle,
        connect=fake_connect_factory([], hold_open=True),
    )
    market_data.cache.update_many({"BTC": 50000.0, "ETH": 3000.0})
    momentum = MomentumService(
        market_data.cache, mock_settings.momentum, mock_settings.live_momentum
    )

    app = create_dashboard_app()
    app.state.market_data = market_data
    app.state.momentum = momentum
    with TestClient(app) as test_client:
        yield test_client
        test_client.portal.call(momentum.close)
        test_client.portal.call(market_data.close)


class TestMarketDataRoutes:
    """Price and feed endpoints."""

    def test_prices(self, client: TestClient) -> None:
        assert client.get("/api/prices").json() == {"BTC": 50000.0, "ETH": 3000.0}
        assert client.get("/api/prices/btc").json() == {"symbol": "BTC", "price": 50000.0}
        assert client.get("/api/prices/DOGE").status_code == 404

    def test_order_book_opens_feed(self, client: TestClient) -> None:
        response = client.get("/api/orderbook/BTC")
        assert response.status_code == 200
        assert response.json() == {"bids": [], "asks": []}
        assert "depth:BTC" in client.get("/api/feeds").json()
        client.delete("/api/orderbook/BTC")
        assert "depth:BTC" not in client.get("/api/feeds").json()

    def test_klines(self, client: TestClient) -> None:
        [kline] = client.get("/api/klines/BTC?interval=1h").json()
        assert kline["close"] == "1.5"
        assert kline["is_final"] is True

    def test_invalid_period(self, client: TestClient) -> None:
        assert client.post("/api/period", json={"period": "7d"}).status_code == 400


class TestMomentumRoutes:
    """Fixed-count folder endpoints and error mapping."""

    def test_folder_flow(self, client: TestClient) -> None:
        response = client.post("/api/momentum/folders", json={"name": "Majors", "window_size": 3})
        assert response.status_code == 201
        folder = response.json()
        assert folder["window_size"] == 3
        folder_id = folder["id"]

        assert client.post(
            f"/api/momentum/folders/{folder_id}/symbols", json={"symbol": "btc"}
        ).json() == {"added": True}
        assert client.post(
            f"/api/momentum/folders/{folder_id}/symbols", json={"symbol": "BTC"}
        ).json() == {"added": False}

        assert client.post(f"/api/momentum/folders/{folder_id}/start").json() == {"is_active": True}
        [result] = client.get(f"/api/momentum/folders/{folder_id}/results").json()
        assert result["symbol"] == "BTC"
        assert result["trend"] == "FLAT"
        assert client.post(f"/api/momentum/folders/{folder_id}/stop").json() == {"is_active": False}

        client.delete(f"/api/momentum/folders/{folder_id}")
        assert client.get("/api/momentum/folders").json() == []

    def test_unknown_folder_is_404(self, client: TestClient) -> None:
        assert client.get("/api/momentum/folders/nope/results").status_code == 404
        assert client.post("/api/momentum/folders/nope/start").status_code == 404

    def test_missing_price_is_422(self, client: TestClient) -> None:
        folder_id = client.post("/api/momentum/folders", json={"name": "x"}).json()["id"]
        response = client.post(
            f"/api/momentum/folders/{folder_id}/symbols", json={"symbol": "DOGE"}
        )
        assert response.status_code == 422

    def test_folder_limit_is_409(self, client: TestClient) -> None:
        for i in range(7):
            assert client.post("/api/momentum/folders", json={"name": f"f{i}"}).status_code == 201
        response = client.post("/api/momentum/folders", json={"name": "f7"})
        assert response.status_code == 409
        assert response.json()["error"] == "You can create at most 7 folders"

    def test_bad_body_is_400(self, client: TestClient) -> None:
        assert client.post("/api/momentum/folders", content=b"{").status_code == 400
        assert client.post("/api/momentum/folders", json={"name": " "}).status_code == 400

    def test_wrong_field_types_are_400(self, client: TestClient) -> None:
        response = client.post("/api/momentum/folders", json={"name": "x", "window_size": "abc"})
        assert response.status_code == 400
        assert response.json()["error"] == "Field 'window_size' must be an integer"
        assert client.post("/api/momentum/folders", json={"name": 5}).status_code == 400
        assert client.post(
            "/api/live-momentum/folders", json={"name": "x", "time_window": 1.5}
        ).status_code == 400
        assert client.get("/api/momentum/folders").json() == []

    def test_zero_window_is_400(self, client: TestClient) -> None:
        response = client.post("/api/momentum/folders", json={"name": "x", "window_size": 0})
        assert response.status_code == 400
        assert client.get("/api/momentum/folders").json() == []


class TestLiveMomentumRoutes:
    """Fixed-duration folder endpoints."""

    def test_live_folder_flow(self, client: TestClient) -> None:
        folder = client.post("/api/live-momentum/folders", json={"name": "Live"}).json()
        assert folder["time_window"] == 300
        folder_id = folder["id"]
        client.post(f"/api/live-momentum/folders/{folder_id}/symbols", json={"symbol": "ETH"})
        [result] = client.get(f"/api/live-momentum/folders/{folder_id}/results").json()
        assert result["data_point_count"] == 1
        assert client.delete(
            f"/api/live-momentum/folders/{folder_id}/symbols/ETH"
        ).json() == {"removed": True}


class TestPriceWebSocket:
    """Initial push on connect."""

    def test_snapshot_on_connect(self, client: TestClient) -> None:
        with client.websocket_connect("/ws/prices") as ws:
            message = ws.receive_json()
        assert message == {"type": "prices", "prices": {"BTC": 50000.0, "ETH": 3000.0}}
