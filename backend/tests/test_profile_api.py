"""Tests for the profile endpoints."""

import pytest
from httpx import AsyncClient


@pytest.mark.api
@pytest.mark.asyncio
class TestProfileEndpoints:
    async def test_no_profile_is_not_an_error(self, client: AsyncClient, auth_headers: dict):
        response = await client.get("/api/profile/", headers=auth_headers)

        assert response.status_code == 200
        assert response.json() == {"found": False, "profile": None}

    async def test_put_then_get(self, client: AsyncClient, auth_headers: dict):
        response = await client.put(
            "/api/profile/",
            headers=auth_headers,
            json={"full_name": "Ada", "address": "1 Loop Rd"},
        )
        assert response.status_code == 200
        assert response.json()["full_name"] == "Ada"

        data = (await client.get("/api/profile/", headers=auth_headers)).json()
        assert data["found"] is True
        assert data["profile"]["address"] == "1 Loop Rd"
        assert data["profile"]["phone_number"] is None

    async def test_partial_update_keeps_other_fields(self, client: AsyncClient, auth_headers: dict):
        await client.put("/api/profile/", headers=auth_headers, json={"full_name": "Ada", "phone_number": "555"})
        await client.put("/api/profile/", headers=auth_headers, json={"phone_number": "", "address": "2 Elm"})

        profile = (await client.get("/api/profile/", headers=auth_headers)).json()["profile"]
        assert profile["full_name"] == "Ada"
        assert profile["phone_number"] == "555"
        assert profile["address"] == "2 Elm"

    async def test_requires_auth(self, client: AsyncClient):
        response = await client.get("/api/profile/")
        assert response.status_code == 401
