"""Shared fixtures for API tests.

Sessions live in the module-level registry; it is cleared around every
test so timers and sessions never leak between tests.
"""

from __future__ import annotations

import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from server.services.registry import registry


# ---------------------------------------------------------------------------
# AsyncClient
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture
async def client():
    """AsyncClient against the app with a clean session registry."""
    from server.main import app

    registry.clear()
    # Skip lifespan (config is loaded lazily by the registry)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    registry.clear()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

GUARD_LANDMARKS = {
    "nose": [0.50, 0.20],
    "left_ear": [0.47, 0.21],
    "right_ear": [0.53, 0.21],
    "left_shoulder": [0.40, 0.40],
    "right_shoulder": [0.60, 0.40],
    "left_elbow": [0.38, 0.50],
    "right_elbow": [0.62, 0.50],
    "left_wrist": [0.44, 0.30],
    "right_wrist": [0.56, 0.30],
    "left_hip": [0.42, 0.70],
    "right_hip": [0.58, 0.70],
}


async def create_drill(client, **body) -> str:
    resp = await client.post("/api/v1/drills", json=body)
    assert resp.status_code == 201, resp.text
    return resp.json()["drill_id"]
