"""Tests for the wizard navigation endpoints."""

import pytest
from httpx import AsyncClient


def _snapshot(**overrides) -> dict:
    snap = {
        "step": 0,
        "name": "",
        "phone": "",
        "address": "",
        "delivery_instructions": "",
        "total_cost": "",
        "tip": "",
        "tip_edited": False,
        "image_names": [],
    }
    snap.update(overrides)
    return snap


@pytest.mark.api
@pytest.mark.asyncio
class TestWizardEndpoints:
    async def test_start_without_profile(self, client: AsyncClient, auth_headers):
        response = await client.get("/api/wizard/", headers=auth_headers)

        assert response.status_code == 200
        view = response.json()
        assert view["step"] == 0
        assert view["title"] == "Your Name"
        assert view["total_steps"] == 7
        assert view["can_proceed"] is False
        assert view["message"] == "Your Name is required"

    async def test_start_prefilled_from_profile(self, client: AsyncClient, auth_headers):
        await client.put(
            "/api/profile/", headers=auth_headers,
            json={"full_name": "Ada", "phone_number": "555", "address": "1 Loop Rd"},
        )

        view = (await client.get("/api/wizard/", headers=auth_headers)).json()
        assert view["name"] == "Ada"
        assert view["phone"] == "555"
        assert view["address"] == "1 Loop Rd"
        assert view["delivery_instructions"] == ""
        assert view["can_proceed"] is True

    async def test_next_blocked_returns_snapshot_unchanged(self, client: AsyncClient, auth_headers):
        response = await client.post(
            "/api/wizard/navigate", headers=auth_headers,
            json={"snapshot": _snapshot(step=4), "action": "next"},
        )

        assert response.status_code == 200
        view = response.json()
        assert view["step"] == 4
        assert view["can_proceed"] is False
        assert view["message"] == "Total cost must be a valid number"

    async def test_next_advances(self, client: AsyncClient, auth_headers):
        view = (await client.post(
            "/api/wizard/navigate", headers=auth_headers,
            json={"snapshot": _snapshot(name="Ada"), "action": "next"},
        )).json()

        assert view["step"] == 1
        assert view["step_name"] == "phone"

    async def test_back_from_first_step_stays(self, client: AsyncClient, auth_headers):
        view = (await client.post(
            "/api/wizard/navigate", headers=auth_headers,
            json={"snapshot": _snapshot(), "action": "back"},
        )).json()
        assert view["step"] == 0

    async def test_set_total_cost_suggests_tip(self, client: AsyncClient, auth_headers):
        view = (await client.post(
            "/api/wizard/navigate", headers=auth_headers,
            json={"snapshot": _snapshot(step=4), "action": "set_total_cost", "value": "100.00"},
        )).json()

        assert view["total_cost"] == "100.00"
        assert view["tip"] == "15.00"
        assert view["can_proceed"] is True

    async def test_set_tip_marks_edited(self, client: AsyncClient, auth_headers):
        view = (await client.post(
            "/api/wizard/navigate", headers=auth_headers,
            json={"snapshot": _snapshot(step=5, total_cost="100"), "action": "set_tip", "value": "25"},
        )).json()

        assert view["tip"] == "25"
        assert view["tip_edited"] is True

    async def test_images_step_needs_two(self, client: AsyncClient, auth_headers):
        view = (await client.post(
            "/api/wizard/navigate", headers=auth_headers,
            json={"snapshot": _snapshot(step=6, image_names=["a.png"]), "action": "next"},
        )).json()

        assert view["is_last_step"] is True
        assert view["message"] == "Please upload at least 2 pictures"

    async def test_unknown_action_rejected(self, client: AsyncClient, auth_headers):
        response = await client.post(
            "/api/wizard/navigate", headers=auth_headers,
            json={"snapshot": _snapshot(), "action": "jump"},
        )
        assert response.status_code == 422

    async def test_exponent_total_is_rejected_not_crashed(self, client: AsyncClient, auth_headers):
        response = await client.post(
            "/api/wizard/navigate", headers=auth_headers,
            json={"snapshot": _snapshot(step=4), "action": "set_total_cost", "value": "1e30"},
        )

        assert response.status_code == 200
        view = response.json()
        assert view["tip"] == ""
        assert view["can_proceed"] is False
        assert view["message"] == "Total cost cannot exceed 99999999.99"

    async def test_remove_image(self, client: AsyncClient, auth_headers):
        view = (await client.post(
            "/api/wizard/navigate", headers=auth_headers,
            json={
                "snapshot": _snapshot(step=6, image_names=["a.png", "b.png", "c.png"]),
                "action": "remove_image",
                "value": "1",
            },
        )).json()

        assert view["image_names"] == ["a.png", "c.png"]
        assert view["can_proceed"] is True

    @pytest.mark.parametrize("position", ["5", "-1", "first", None])
    async def test_remove_image_bad_position(self, client: AsyncClient, auth_headers, position):
        response = await client.post(
            "/api/wizard/navigate", headers=auth_headers,
            json={
                "snapshot": _snapshot(step=6, image_names=["a.png", "b.png"]),
                "action": "remove_image",
                "value": position,
            },
        )

        assert response.status_code == 422
        error = response.json()["error"]
        assert error["code"] == "WIZARD_VALIDATION_ERROR"
        assert error["details"] == {"step": "images"}
