"""Tests for application wiring and the command line."""

import asyncio
import json

import pytest
from aiohttp.test_utils import TestClient, TestServer
from click.testing import CliRunner

from raccoon.config import Settings
from raccoon.main import Raccoon, cli
from raccoon.utils.logging import SecretRedactor
from raccoon.webhooks.handlers import compute_signature
from tests.fixtures.gitlab_events import payload
from tests.fixtures.irc_server import FakeServer


def _settings(**overrides) -> Settings:
    data = {
        "webhook": {"secret": "s3cret"},
        "irc": {
            "nickname": "raccoon",
            "server": "irc.example.net",
            "channels": ["#dev"],
            "flood": {"interval": 0},
        },
    }
    data.update(overrides)
    return Settings(**data)


class TestRaccoon:
    async def test_webhook_reaches_irc(self):
        server = FakeServer()
        app = Raccoon(_settings(), connector=server.connect)
        await app.session.start()
        await app.session.wait_ready(2)

        body = json.dumps(payload("issue")).encode()
        async with TestClient(TestServer(app.server.build_app())) as client:
            resp = await client.post(
                "/gitlab",
                data=body,
                headers={"X-Gitlab-Signature": compute_signature(body, "s3cret")},
            )
            assert resp.status == 200

        for _ in range(200):
            if server.delivered:
                break
            await asyncio.sleep(0.01)

        assert len(server.delivered) == 1
        assert server.delivered[0].startswith("PRIVMSG #dev :🐛 Jane Doe opened issue #23")
        await app.stop()

    async def test_start_and_stop(self, unused_tcp_port):
        server = FakeServer()
        app = Raccoon(_settings(), connector=server.connect)
        await app.start(bind="127.0.0.1", port=unused_tcp_port)
        await app.session.wait_ready(2)
        await app.stop()
        assert server.latest.sent[-1].startswith("QUIT")


@pytest.fixture
def quiet_logging(monkeypatch):
    monkeypatch.setattr("raccoon.main.setup_logging", lambda **kwargs: None)


@pytest.mark.usefixtures("quiet_logging")
class TestCli:
    def test_invalid_config_exits_1(self, tmp_path, monkeypatch):
        monkeypatch.delenv("RACCOON_WEBHOOK__SECRET", raising=False)
        path = tmp_path / "raccoon.toml"
        path.write_text('[webhook]\nsecret = ""\n')
        result = CliRunner().invoke(cli, ["--config", str(path)])
        assert result.exit_code == 1

    def test_missing_config_exits_1(self, tmp_path):
        result = CliRunner().invoke(cli, ["--config", str(tmp_path / "absent.toml")])
        assert result.exit_code == 1

    def test_version(self):
        result = CliRunner().invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert "raccoon" in result.output


class TestRedaction:
    def test_irc_credentials_redacted(self):
        redactor = SecretRedactor()
        assert "hunter2" not in redactor.redact("PRIVMSG NickServ :IDENTIFY raccoon hunter2")
        assert "letmein" not in redactor.redact("PASS letmein")

    def test_assignment_redacted(self):
        assert "abc123" not in SecretRedactor().redact("secret=abc123 was wrong")

    def test_registered_values_redacted(self):
        redactor = SecretRedactor()
        redactor.register(["chan-key", None, ""])
        event = redactor(None, "info", {"event": "irc_send", "line": "JOIN #ops chan-key"})
        assert event["line"] == "JOIN #ops ***REDACTED***"
        assert event["event"] == "irc_send"
