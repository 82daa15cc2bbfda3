"""Tests for src.web.app — the webhook endpoint."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from src.data.models import UserStats
from src.web.app import create_app, extract_chat_id

MESSAGE_UPDATE = {
    "update_id": 1,
    "message": {
        "message_id": 10,
        "date": 1717315200,
        "chat": {"id": 500, "type": "private"},
        "from": {"id": 500, "is_bot": False, "first_name": "Ola", "username": "ola"},
        "text": "200",
    },
}

CALLBACK_UPDATE = {
    "update_id": 2,
    "callback_query": {
        "id": "cb-1",
        "chat_instance": "x",
        "data": "show_summary",
        "from": {"id": 500, "is_bot": False, "first_name": "Ola"},
        "message": {
            "message_id": 11,
            "date": 1717315200,
            "chat": {"id": 500, "type": "private"},
        },
    },
}


@pytest.fixture
def application():
    application = MagicMock()
    application.process_update = AsyncMock()
    service = MagicMock()
    service.stats.return_value = UserStats(3, 2, 3, 17)
    application.bot_data = {"tips": service}
    return application


@pytest.fixture
def client(application):
    # No context manager: lifespan (which starts the bot) is not run
    return TestClient(create_app(application))


class TestExtractChatId:
    def test_message(self):
        assert extract_chat_id(MESSAGE_UPDATE) == 500

    def test_callback(self):
        assert extract_chat_id(CALLBACK_UPDATE) == 500

    @pytest.mark.parametrize("payload", [
        {},
        {"update_id": 3},
        {"message": {"message_id": 1}},
        {"message": "text"},
        {"callback_query": {"id": "x"}},
        {"edited_message": {"chat": {"id": 1}}},
    ])
    def test_malformed(self, payload):
        assert extract_chat_id(payload) is None


class TestWebhook:
    def test_get_is_not_allowed(self, client):
        assert client.get("/api/webhook").status_code == 405

    def test_put_is_not_allowed(self, client):
        assert client.put("/api/webhook", json=MESSAGE_UPDATE).status_code == 405

    def test_message_is_dispatched(self, client, application):
        with patch("src.web.app.Update.de_json", return_value="update") as de_json:
            response = client.post("/api/webhook", json=MESSAGE_UPDATE)
        assert response.status_code == 200
        de_json.assert_called_once_with(MESSAGE_UPDATE, application.bot)
        application.process_update.assert_awaited_once_with("update")

    def test_callback_is_dispatched(self, client, application):
        with patch("src.web.app.Update.de_json", return_value="update"):
            response = client.post("/api/webhook", json=CALLBACK_UPDATE)
        assert response.status_code == 200
        application.process_update.assert_awaited_once()

    def test_malformed_update_is_acknowledged(self, client, application):
        response = client.post("/api/webhook", json={"update_id": 5})
        assert response.status_code == 200
        application.process_update.assert_not_called()

    def test_non_object_body_is_acknowledged(self, client, application):
        response = client.post("/api/webhook", json=[1, 2, 3])
        assert response.status_code == 200
        application.process_update.assert_not_called()

    def test_processing_error_still_returns_200(self, client, application):
        application.process_update.side_effect = RuntimeError("boom")
        with patch("src.web.app.Update.de_json", return_value="update"):
            response = client.post("/api/webhook", json=MESSAGE_UPDATE)
        assert response.status_code == 200

    def test_invalid_json_is_rejected(self, client, application):
        response = client.post(
            "/api/webhook", content=b"{not json", headers={"content-type": "application/json"},
        )
        assert response.status_code == 400
        application.process_update.assert_not_called()


class TestAuxiliaryEndpoints:
    def test_health(self, client):
        assert client.get("/health").json() == {"status": "ok"}

    def test_stats(self, client):
        assert client.get("/stats").json() == {
            "total_users": 3,
            "active_today": 2,
            "active_this_week": 3,
            "total_interactions": 17,
        }
