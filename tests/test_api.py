"""Tests for the /notify HTTP API"""

import httpx
import pytest

from notify_hub.main import app, init_services
from notify_hub.schemas.channel import SECRET_MASK, ChannelType

DINGTALK = {
    "name": "ops",
    "type": "dingtalk",
    "enabled": True,
    "dingtalk_webhook": "https://oapi.dingtalk.com/robot/send?access_token=abc",
    "dingtalk_secret": "SECabc",
}
WEBHOOK = {"name": "pager", "type": "webhook", "webhook_url": "https://hooks.example.com/notify"}
SIGNED_WEBHOOK = {
    "name": "pager",
    "type": "webhook",
    "webhook_url": "https://hooks.example.com/notify",
    "webhook_headers": {"Authorization": "Bearer t0k3n", "X-Team": "ops"},
}
EMAIL = {
    "name": "oncall",
    "type": "email",
    "smtp_host": "smtp.example.com",
    "smtp_port": 465,
    "smtp_user": "alerts@example.com",
    "smtp_password": "hunter2",
    "email_to": ["a@example.com"],
}


@pytest.fixture
async def client(session_factory, registry):
    init_services(app, session_factory, registry)
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


class TestConfigEndpoints:
    async def test_add_and_list_masks_secrets(self, client):
        resp = await client.post("/notify/configs", json=DINGTALK)
        assert resp.status_code == 200
        assert resp.json() is None

        resp = await client.get("/notify/configs")

        assert resp.status_code == 200
        [config] = resp.json()
        assert config["name"] == "ops"
        assert config["dingtalk_webhook"] == DINGTALK["dingtalk_webhook"]
        assert config["dingtalk_secret"] == SECRET_MASK

    async def test_duplicate(self, client):
        await client.post("/notify/configs", json=DINGTALK)

        resp = await client.post("/notify/configs", json=DINGTALK)

        assert resp.status_code == 409
        assert resp.json()["error"] == "duplicate_config"
        assert "ops" in resp.json()["detail"]

    async def test_invalid(self, client):
        resp = await client.post("/notify/configs", json={"name": "ops", "type": "dingtalk"})

        assert resp.status_code == 422
        assert resp.json() == {"error": "invalid_config", "detail": "dingtalk_webhook: Field required"}

    async def test_update_keeps_masked_secret(self, client):
        await client.post("/notify/configs", json=DINGTALK)
        [listed] = (await client.get("/notify/configs")).json()
        listed["dingtalk_webhook"] = "https://oapi.dingtalk.com/robot/send?access_token=new"

        resp = await client.put("/notify/configs", json=listed)

        assert resp.status_code == 200
        stored = await app.state.config_store.get("ops", "dingtalk")
        assert stored.dingtalk_secret == "SECabc"
        assert stored.dingtalk_webhook.endswith("access_token=new")

    async def test_list_masks_credential_headers(self, client):
        await client.post("/notify/configs", json=SIGNED_WEBHOOK)

        [config] = (await client.get("/notify/configs")).json()

        assert config["webhook_headers"] == {"Authorization": SECRET_MASK, "X-Team": "ops"}

    async def test_update_rejects_masked_password_for_new_server(self, client):
        await client.post("/notify/configs", json=EMAIL)
        [listed] = (await client.get("/notify/configs")).json()
        listed["smtp_host"] = "smtp.attacker.example"

        resp = await client.put("/notify/configs", json=listed)

        assert resp.status_code == 422
        assert resp.json()["error"] == "invalid_config"
        stored = await app.state.config_store.get("oncall", "email")
        assert stored.smtp_host == "smtp.example.com"

    async def test_update_missing(self, client):
        resp = await client.put("/notify/configs", json=WEBHOOK)

        assert resp.status_code == 404
        assert resp.json()["error"] == "not_found"

    async def test_delete_twice(self, client):
        await client.post("/notify/configs", json=WEBHOOK)

        first = await client.delete("/notify/configs", params={"name": "pager", "type": "webhook"})
        second = await client.delete("/notify/configs", params={"name": "pager", "type": "webhook"})

        assert first.status_code == 200
        assert second.status_code == 404

    async def test_enable_toggle(self, client):
        await client.post("/notify/configs", json=WEBHOOK)

        resp = await client.post(
            "/notify/configs/enable", json={"name": "pager", "type": "webhook", "enabled": False}
        )

        assert resp.status_code == 200
        [config] = (await client.get("/notify/configs")).json()
        assert config["enabled"] is False
        assert config["webhook_url"] == WEBHOOK["webhook_url"]

    async def test_enable_bad_type(self, client):
        resp = await client.post("/notify/configs/enable", json={"name": "x", "type": "fax", "enabled": True})

        assert resp.status_code == 422
        assert resp.json()["error"] == "invalid_request"

    async def test_types(self, client):
        resp = await client.get("/notify/types")

        assert resp.status_code == 200
        assert {t["id"] for t in resp.json()} == {t.value for t in ChannelType}


class TestTestEndpoint:
    async def test_invalid_config_reports_field(self, client, fake_adapters):
        resp = await client.post(
            "/notify/test",
            json={
                "name": "mail",
                "type": "email",
                "smtp_host": "smtp.example.com",
                "smtp_port": 70000,
                "smtp_from": "a@example.com",
                "email_to": ["b@example.com"],
            },
        )

        assert resp.status_code == 200
        body = resp.json()
        assert body["success"] is False
        assert "smtp_port" in body["message"]
        assert fake_adapters[ChannelType.EMAIL].calls == []

    async def test_saved_config_with_masked_secret(self, client, fake_adapters):
        await client.post("/notify/configs", json=DINGTALK)
        [listed] = (await client.get("/notify/configs")).json()

        resp = await client.post("/notify/test", json=listed)

        assert resp.json()["success"] is True
        [config] = fake_adapters[ChannelType.DINGTALK].configs
        assert config.dingtalk_secret == "SECabc"

    async def test_does_not_write_history(self, client):
        await client.post("/notify/test", json=WEBHOOK)

        assert (await client.get("/notify/history")).json() == []

    async def test_masked_password_not_sent_to_other_server(self, client, fake_adapters):
        await client.post("/notify/configs", json=EMAIL)
        [listed] = (await client.get("/notify/configs")).json()
        listed.update(smtp_host="smtp.attacker.example", smtp_port=25)

        resp = await client.post("/notify/test", json=listed)

        assert resp.status_code == 200
        body = resp.json()
        assert body["success"] is False
        assert body["message"].startswith("smtp_password: re-enter the secret")
        assert fake_adapters[ChannelType.EMAIL].calls == []

    async def test_masked_header_not_sent_to_other_url(self, client, fake_adapters):
        await client.post("/notify/configs", json=SIGNED_WEBHOOK)
        [listed] = (await client.get("/notify/configs")).json()
        listed["webhook_url"] = "https://collector.attacker.example/"

        resp = await client.post("/notify/test", json=listed)

        assert resp.json()["success"] is False
        assert fake_adapters[ChannelType.WEBHOOK].calls == []


class TestSendAndHistory:
    async def test_send_records_history(self, client, fake_adapters):
        await client.post("/notify/configs", json=DINGTALK)
        await client.post("/notify/configs", json=WEBHOOK)

        resp = await client.post(
            "/notify/send",
            json={"level": "warning", "title": "Disk 90%", "content": "/var is filling", "source": "node-7"},
        )

        assert resp.status_code == 200
        assert resp.json() is None
        history = (await client.get("/notify/history")).json()
        assert {h["type"] for h in history} == {"dingtalk", "webhook"}
        assert all(h["status"] == "success" for h in history)
        assert history[0]["message"]["title"] == "Disk 90%"
        assert history[0]["message"]["source"] == "node-7"

    async def test_send_with_no_channels(self, client):
        resp = await client.post("/notify/send", json={"title": "hello"})

        assert resp.status_code == 200
        assert (await client.get("/notify/history")).json() == []

    async def test_send_requires_title(self, client):
        resp = await client.post("/notify/send", json={"level": "info", "content": "no title"})

        assert resp.status_code == 422
        assert resp.json()["error"] == "invalid_request"
        assert "title" in resp.json()["detail"]

    async def test_history_pagination_and_message_view(self, client):
        await client.post("/notify/configs", json=WEBHOOK)
        for title in ("first", "second", "third"):
            await client.post("/notify/send", json={"title": title})

        page = (await client.get("/notify/history", params={"page": 2, "limit": 1})).json()
        assert [h["message"]["title"] for h in page] == ["second"]

        message_id = page[0]["message"]["id"]
        view = (await client.get(f"/notify/history/{message_id}")).json()
        assert view["message"]["title"] == "second"
        assert [r["channel_name"] for r in view["results"]] == ["pager"]

    async def test_history_rejects_bad_page(self, client):
        resp = await client.get("/notify/history", params={"page": 0})

        assert resp.status_code == 422

    async def test_unknown_message_history(self, client):
        resp = await client.get("/notify/history/6f1c6f52-2b67-4a55-9b43-2f1c11d5a0a1")

        assert resp.status_code == 404


async def test_health(client):
    resp = await client.get("/health")

    assert resp.json() == {"status": "ok"}
