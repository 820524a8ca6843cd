import pytest
from fastapi.testclient import TestClient

from py_market_intelligence.api import create_app
from py_market_intelligence.handler import MarketIntelligenceHandler

PREFIX = "/api/market-intelligence"


@pytest.fixture
def client(app_settings):
    app = create_app(app_settings, handler=MarketIntelligenceHandler())
    with TestClient(app) as test_client:
        yield test_client


@pytest.mark.parametrize(
    "path, params, source",
    [
        ("/trade-flow", {"hs_code": "210690", "market": "UAE"}, "WITS API"),
        (
            "/tariff",
            {"hs_code": "210690", "origin": "RSA", "destination": "UAE"},
            "WITS API",
        ),
        ("/market-size", {"product_category": "food", "market": "UAE"}, "ITC TradeMap"),
        ("/buyers", {"industry": "food", "market": "UAE"}, "Internal Trade DB"),
        (
            "/competitive-landscape",
            {"product_category": "food", "market": "UAE"},
            "Market Research DB",
        ),
    ],
)
def test_get_routes_return_success_envelopes(client, path, params, source):
    response = client.get(PREFIX + path, params=params)

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == 200
    assert body["data"]
    assert body["metadata"]["source"] == source
    assert body["metadata"]["data_completeness"] == "complete"
    assert body["metadata"]["last_updated"].endswith("Z")


def test_get_route_missing_field_is_a_400(client):
    response = client.get(
        f"{PREFIX}/tariff", params={"hs_code": "210690", "origin": "RSA"}
    )

    assert response.status_code == 400
    body = response.json()
    assert body["data"] is None
    assert body["error_code"] == "VALIDATION_ERROR"
    assert "destination" in body["message"]
    assert body["metadata"]["source"] == "Error"


def test_malformed_query_parameter_is_a_400(client):
    response = client.get(
        f"{PREFIX}/trade-flow",
        params={"hs_code": "210690", "market": "UAE", "year": "abc"},
    )

    assert response.status_code == 400
    body = response.json()
    assert body["message"] == "Invalid request data"
    assert body["error_code"] == "VALIDATION_ERROR"
    assert body["details"]["errors"][0]["field"] == "query.year"


def test_unified_endpoint_success(client):
    response = client.post(
        PREFIX,
        json={"type": "market_size", "product_category": "food", "market": "UAE"},
    )

    assert response.status_code == 200
    assert response.json()["data"]["market_value_usd"] == "8.5 Billion"


@pytest.mark.parametrize(
    "payload, message",
    [
        ({"hs_code": "210690"}, "Request type is required"),
        ({"type": "weather"}, "Unsupported request type: weather"),
        (
            {"type": "tariff", "hs_code": "210690", "origin": "RSA"},
            "Destination country (destination) is required for tariff requests",
        ),
        (
            {"type": "trade_flow", "hs_code": "210690", "market": "UAE", "year": "soon"},
            "Invalid parameters for trade flow requests",
        ),
    ],
)
def test_unified_endpoint_validation_errors(client, payload, message):
    response = client.post(PREFIX, json=payload)

    assert response.status_code == 400
    body = response.json()
    assert body["error_code"] == "VALIDATION_ERROR"
    assert body["message"] == message


def test_unified_endpoint_rejects_non_object_body(client):
    response = client.post(PREFIX, json=["trade_flow"])

    assert response.status_code == 400
    assert response.json()["message"] == "Invalid request data"


def test_unexpected_errors_become_500_envelopes(app_settings, mocker):
    handler = mocker.MagicMock(spec=MarketIntelligenceHandler)
    handler.handle.side_effect = RuntimeError("boom")
    app = create_app(app_settings, handler=handler)

    with TestClient(app) as test_client:
        response = test_client.get(
            f"{PREFIX}/buyers", params={"industry": "food", "market": "UAE"}
        )

    assert response.status_code == 500
    body = response.json()
    assert body["error_code"] == "INTERNAL_SERVER_ERROR"
    assert body["message"] == "boom"
    assert body["details"]["original_error"] == "RuntimeError: boom"


def test_routes_honour_configured_prefix(app_settings):
    settings = app_settings.model_copy(
        update={"api": app_settings.api.model_copy(update={"prefix": "/v2"})}
    )
    app = create_app(settings, handler=MarketIntelligenceHandler())

    with TestClient(app) as test_client:
        response = test_client.get(
            "/v2/buyers", params={"industry": "food", "market": "UAE"}
        )

    assert response.status_code == 200
