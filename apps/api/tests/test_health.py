from unittest.mock import patch

import pytest
from httpx import ASGITransport, AsyncClient

from main import app


@pytest.mark.asyncio
async def test_liveness_probe():
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        response = await client.get("/health/live")

    assert response.status_code == 200
    assert response.json() == {"alive": True}


@pytest.mark.asyncio
async def test_readiness_reports_missing_apify_token():
    with patch("routers.health.settings.APIFY_API_TOKEN", ""):
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            response = await client.get("/health/ready")

    assert response.status_code == 503
    assert "APIFY_API_TOKEN" in response.json()["missing"]


@pytest.mark.asyncio
async def test_readiness_with_configured_scraper():
    with patch("routers.health.settings.APIFY_API_TOKEN", "apify-token"):
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            response = await client.get("/health/ready")

    assert response.status_code == 200
    assert response.json() == {"ready": True}
