from __future__ import annotations

import time
import unittest
from unittest.mock import patch

from fastapi.testclient import TestClient
from jose import jwt

from grana_agent import config
from grana_agent.contracts import CommandResultV1
from grana_agent.main import app

SECRET = "test-secret"


def _token(sub: str, secret: str = SECRET) -> str:
    claims = {"sub": sub, "aud": "authenticated", "exp": int(time.time()) + 300}
    return jwt.encode(claims, secret, algorithm="HS256")


class ChatApiTests(unittest.TestCase):
    def setUp(self) -> None:
        self.client = TestClient(app)
        patcher = patch.multiple(
            config,
            DEV_BYPASS_AUTH=False,
            SUPABASE_JWT_SECRET=SECRET,
            SUPABASE_JWT_AUDIENCE="authenticated",
        )
        patcher.start()
        self.addCleanup(patcher.stop)

    def test_health(self) -> None:
        response = self.client.get("/health")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"status": "ok"})

    def test_missing_token_is_rejected(self) -> None:
        response = self.client.post("/chat/command", json={"message": "oi"})

        self.assertEqual(response.status_code, 401)

    def test_token_signed_with_other_secret_is_rejected(self) -> None:
        response = self.client.post(
            "/chat/command",
            json={"message": "oi"},
            headers={"Authorization": f"Bearer {_token('u-1', secret='other')}"},
        )

        self.assertEqual(response.status_code, 401)

    @patch("grana_agent.routes.chat.process_command")
    def test_command_runs_for_token_subject(self, mock_process) -> None:
        mock_process.return_value = CommandResultV1(success=True, message="✅ feito")

        response = self.client.post(
            "/chat/command",
            json={"message": "Gastei 10 no café"},
            headers={"Authorization": f"Bearer {_token('api-user-1')}"},
        )

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["message"], "✅ feito")
        session, message = mock_process.call_args.args
        self.assertEqual(session.user_id, "api-user-1")
        self.assertEqual(message, "Gastei 10 no café")

    @patch("grana_agent.routes.chat.process_command")
    def test_dev_bypass_and_session_reset(self, mock_process) -> None:
        mock_process.return_value = CommandResultV1(success=True, message="ok")
        with patch.multiple(config, DEV_BYPASS_AUTH=True, DEV_USER_ID="api-dev-user"):
            self.client.post("/chat/command", json={"message": "oi"})
            first = self.client.delete("/chat/session")
            second = self.client.delete("/chat/session")

        self.assertEqual(mock_process.call_args.args[0].user_id, "api-dev-user")
        self.assertEqual(first.json(), {"cleared": True})
        self.assertEqual(second.json(), {"cleared": False})

    def test_empty_message_is_rejected(self) -> None:
        with patch.object(config, "DEV_BYPASS_AUTH", True):
            response = self.client.post("/chat/command", json={"message": ""})

        self.assertEqual(response.status_code, 422)


if __name__ == "__main__":
    unittest.main()
