"""
Tests for the administration APIs: employee codes, admin groups,
system settings and telegram users.
"""
import pytest
from datetime import timedelta
from uuid import UUID

from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.activation_code import ActivationCode
from app.models.telegram_user import TelegramUser
from app.services import activation_codes
from app.services.clock import utcnow

from conftest import make_order


# ============================================================
# EMPLOYEE CODES
# ============================================================

@pytest.mark.asyncio
async def test_issue_and_consume_code(client: AsyncClient):
    response = await client.post("/api/employee-codes/", json={"name": "Henry", "type": "admin"})

    assert response.status_code == 201
    issued = response.json()
    assert len(issued["code"]) == 6
    assert issued["is_used"] is False

    response = await client.post(
        "/api/employee-codes/consume", json={"code": issued["code"], "used_by": "777"}
    )
    assert response.status_code == 200
    assert response.json() == {"name": "Henry", "type": "admin"}

    response = await client.post("/api/employee-codes/consume", json={"code": issued["code"]})
    assert response.status_code == 409
    assert response.json()["detail"]["code"] == "code_already_used"


@pytest.mark.asyncio
async def test_consume_error_codes(client: AsyncClient, db: AsyncSession):
    response = await client.post("/api/employee-codes/consume", json={"code": "000000"})
    assert response.status_code == 404
    assert response.json()["detail"]["code"] == "code_not_found"

    issued = (await client.post("/api/employee-codes/", json={"name": "Ivy"})).json()
    record = await db.get(ActivationCode, UUID(issued["id"]))
    record.expires_at = utcnow() - timedelta(seconds=1)
    await db.commit()

    response = await client.post("/api/employee-codes/consume", json={"code": issued["code"]})
    assert response.status_code == 409
    assert response.json()["detail"]["code"] == "code_expired"


@pytest.mark.asyncio
async def test_issue_code_requires_name(client: AsyncClient):
    response = await client.post("/api/employee-codes/", json={"name": "  "})
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_issue_code_exhaustion_is_503(client: AsyncClient, monkeypatch):
    monkeypatch.setattr(activation_codes, "_generate_digits", lambda length: "424242")
    assert (await client.post("/api/employee-codes/", json={"name": "A"})).status_code == 201

    response = await client.post("/api/employee-codes/", json={"name": "B"})
    assert response.status_code == 503
    assert response.json()["detail"]["code"] == "code_generation_failed"


@pytest.mark.asyncio
async def test_list_and_purge_codes(client: AsyncClient, db: AsyncSession):
    live = (await client.post("/api/employee-codes/", json={"name": "Live"})).json()
    stale = (await client.post("/api/employee-codes/", json={"name": "Stale"})).json()
    record = await db.get(ActivationCode, UUID(stale["id"]))
    record.expires_at = utcnow() - timedelta(minutes=1)
    await db.commit()

    listed = (await client.get("/api/employee-codes/")).json()
    assert [c["id"] for c in listed] == [live["id"]]

    listed = (await client.get("/api/employee-codes/", params={"include_inactive": True})).json()
    assert len(listed) == 2

    response = await client.delete("/api/employee-codes/expired")
    assert response.json() == {"purged": 1}


# ============================================================
# ADMIN GROUPS
# ============================================================

@pytest.mark.asyncio
async def test_activate_admin_group(client: AsyncClient):
    response = await client.post(
        "/api/admin-groups/activate", json={"group_id": "-100777", "code": "8888"}
    )

    assert response.status_code == 200
    assert response.json()["group_id"] == "-100777"
    assert response.json()["is_active"] is True

    groups = (await client.get("/api/admin-groups/")).json()
    assert [g["group_id"] for g in groups] == ["-100777"]


@pytest.mark.asyncio
async def test_activate_admin_group_wrong_code(client: AsyncClient):
    response = await client.post(
        "/api/admin-groups/activate", json={"group_id": "-100777", "code": "0000"}
    )

    assert response.status_code == 403
    assert response.json()["detail"]["code"] == "invalid_activation_code"
    assert (await client.get("/api/admin-groups/", params={"active_only": False})).json() == []


@pytest.mark.asyncio
async def test_activate_admin_group_full_width_digits(client: AsyncClient):
    response = await client.post(
        "/api/admin-groups/activate", json={"group_id": "-100777", "code": "８８８８"}
    )

    assert response.status_code == 403
    assert response.json()["detail"]["code"] == "invalid_activation_code"


@pytest.mark.asyncio
async def test_disable_admin_group(client: AsyncClient):
    await client.post("/api/admin-groups/activate", json={"group_id": "-5", "code": "8888"})

    response = await client.patch("/api/admin-groups/-5", json={"is_active": False})
    assert response.status_code == 200
    assert response.json()["is_active"] is False

    assert (await client.get("/api/admin-groups/")).json() == []
    assert (await client.patch("/api/admin-groups/-404", json={"is_active": True})).status_code == 404


# ============================================================
# SETTINGS
# ============================================================

@pytest.mark.asyncio
async def test_admin_activation_code_endpoints(client: AsyncClient):
    assert (await client.get("/api/settings/admin-activation-code")).json() == {"code": "8888"}

    response = await client.put("/api/settings/admin-activation-code", json={"code": "12345"})
    assert response.status_code == 400
    assert response.json()["detail"]["code"] == "invalid_code_format"

    response = await client.put("/api/settings/admin-activation-code", json={"code": "2468"})
    assert response.status_code == 200
    assert (await client.get("/api/settings/admin-activation-code")).json() == {"code": "2468"}

    response = await client.post(
        "/api/admin-groups/activate", json={"group_id": "-9", "code": "8888"}
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_admin_code_hidden_from_generic_settings(client: AsyncClient):
    await client.put("/api/settings/admin-activation-code", json={"code": "2468"})
    await client.post("/api/settings/", json={"key": "bot_greeting", "value": "hello"})

    listed = (await client.get("/api/settings/")).json()
    assert [s["key"] for s in listed] == ["bot_greeting"]

    assert (await client.get("/api/settings/admin_activation_code")).status_code == 404
    assert (await client.get("/api/settings/bot_greeting")).json()["value"] == "hello"
    assert (await client.get("/api/settings/missing")).status_code == 404


@pytest.mark.asyncio
async def test_generic_setting_write_validates_admin_code(client: AsyncClient):
    response = await client.post(
        "/api/settings/", json={"key": "admin_activation_code", "value": "abcd"}
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_timezone_setting(client: AsyncClient):
    assert (await client.get("/api/settings/timezone")).json() == {"timezone": "Asia/Shanghai"}

    response = await client.post("/api/settings/", json={"key": "timezone", "value": "Not/AZone"})
    assert response.status_code == 400

    response = await client.post("/api/settings/", json={"key": "timezone", "value": "Europe/London"})
    assert response.status_code == 200

    # Cache was cleared by the write
    assert (await client.get("/api/settings/timezone")).json() == {"timezone": "Europe/London"}


@pytest.mark.asyncio
async def test_timezone_change_refreshes_dashboard(
    client: AsyncClient, db: AsyncSession, employee: TelegramUser, fresh_services
):
    await make_order(db, employee, number="#tz1")
    assert (await client.get("/api/dashboard/stats")).json()["timezone"] == "Asia/Shanghai"

    await client.post("/api/settings/", json={"key": "timezone", "value": "America/New_York"})

    assert not fresh_services.stats_cache.is_cached
    assert (await client.get("/api/dashboard/stats")).json()["timezone"] == "America/New_York"


# ============================================================
# TELEGRAM USERS
# ============================================================

@pytest.mark.asyncio
async def test_register_telegram_user(client: AsyncClient):
    response = await client.post(
        "/api/telegram-users/",
        json={"telegram_id": "2000001", "username": "jdoe", "first_name": "Jane"},
    )

    assert response.status_code == 201
    data = response.json()
    assert data["role"] == "employee"
    assert data["display_name"] == "Jane"
    assert data["is_active"] is True

    duplicate = await client.post("/api/telegram-users/", json={"telegram_id": "2000001"})
    assert duplicate.status_code == 409


@pytest.mark.asyncio
async def test_register_requires_telegram_id(client: AsyncClient):
    response = await client.post("/api/telegram-users/", json={"telegram_id": "  "})
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_list_telegram_users_by_role(client: AsyncClient, employee: TelegramUser):
    admins = (await client.get("/api/telegram-users/", params={"role": "admin"})).json()
    employees = (await client.get("/api/telegram-users/", params={"role": "employee"})).json()

    assert [u["telegram_id"] for u in admins] == ["9000001"]
    assert [u["telegram_id"] for u in employees] == ["1000001"]


@pytest.mark.asyncio
async def test_update_telegram_user(client: AsyncClient, employee: TelegramUser):
    response = await client.patch(
        f"/api/telegram-users/{employee.id}",
        json={"role": "admin", "last_name": None},
    )

    assert response.status_code == 200
    assert response.json()["role"] == "admin"
    assert response.json()["display_name"] == "Alice"

    # Explicit nulls for role / is_active are ignored
    response = await client.patch(f"/api/telegram-users/{employee.id}", json={"role": None})
    assert response.json()["role"] == "admin"


@pytest.mark.asyncio
async def test_deactivating_employee_updates_stats(client: AsyncClient, employee: TelegramUser):
    assert (await client.get("/api/dashboard/stats")).json()["active_employees"] == 1

    await client.patch(f"/api/telegram-users/{employee.id}", json={"is_active": False})

    assert (await client.get("/api/dashboard/stats")).json()["active_employees"] == 0
