import pytest
from asgi_lifespan import LifespanManager
from httpx import ASGITransport, AsyncClient

from taxadvisor.agents import AUDIT_FALLBACK
from tests.fakes import FakeGeminiClient, FakeImageClient, call_response, text_response


@pytest.mark.asyncio
async def test_advice_without_credentials_returns_local_calculation(client):
    res = await client.post("/api/advice", json={"question": "현재 전략 알려줘"})
    assert res.status_code == 200
    data = res.json()
    assert data["user_id"] == "me"
    assert data["question"] == "현재 전략 알려줘"
    assert data["iterations"] == 0
    assert data["fallback_used"] is True
    assert data["primary_strategy"].startswith("MCP 도구 조회 실패로")
    assert data["audit_review"] == AUDIT_FALLBACK
    assert data["base64_image"] == ""
    assert data["tax_preview"] == {
        "realized_gain": 10_000_000,
        "unrealized_loss": -6_050_000,
        "estimated_tax_before_harvest": 2_200_000,
        "estimated_tax_after_harvest": 869_000,
        "estimated_tax_savings": 1_331_000,
    }


@pytest.mark.asyncio
async def test_advice_accepts_empty_body(client):
    res = await client.post("/api/advice", json={})
    assert res.status_code == 200
    assert res.json()["question"] is None


@pytest.mark.asyncio
async def test_advice_runs_all_agents(app_factory):
    gemini = FakeGeminiClient(
        [call_response("getUserPortfolio"), text_response("전략"), text_response("- 감사")]
    )
    images = FakeImageClient(image="data:image/png;base64,QUJD")
    app, _, _ = app_factory(fake_gemini=gemini, fake_image=images)
    async with LifespanManager(app):
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as http_client:
            res = await http_client.post("/api/advice", json={"question": "q"})
    data = res.json()
    assert data["primary_strategy"] == "전략"
    assert data["iterations"] == 2
    assert data["fallback_used"] is False
    assert data["audit_review"] == "- 감사"
    assert data["base64_image"] == "data:image/png;base64,QUJD"
    assert gemini.closed
    assert images.closed


@pytest.mark.asyncio
async def test_tools_endpoint_lists_declarations(client):
    res = await client.get("/api/tools")
    assert res.status_code == 200
    tools = res.json()
    assert [t["name"] for t in tools] == ["getUserPortfolio", "getRealizedGains"]
    assert tools[0]["parameters"]["properties"]["userId"]["type"] == "string"


@pytest.mark.asyncio
async def test_settings_masks_api_keys(client):
    res = await client.get("/settings")
    assert res.status_code == 200
    settings = res.json()["settings"]
    assert settings["gemini"]["api_key"] == "********"
    assert settings["image"]["api_key"] == "********"
    assert settings["gemini"]["model"] == "test-model"


@pytest.mark.asyncio
async def test_health_reports_configuration(client):
    res = await client.get("/health")
    assert res.json() == {"ok": True, "model_configured": False, "image_configured": False}
