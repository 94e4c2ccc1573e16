"""Tests for the CLI interface.

Covers --help output, ask (streaming, context, apply, failures), and the
config sub-commands via CliRunner.
"""

from __future__ import annotations

from unittest.mock import patch

import pytest
from typer.testing import CliRunner

from partner import __version__, config_loader
from partner.cli import app
from partner.errors import RequestError
from partner.providers.base import ModelProvider
from partner.schemas.config import PartnerConfig
from partner.session import ChatSession

# NO_COLOR=1 prevents Rich from injecting ANSI codes inside option names,
# which breaks substring matching in CI (headless, no TTY).
# COLUMNS=200 prevents wrapping that could split a flag across lines.
runner = CliRunner(env={"NO_COLOR": "1", "COLUMNS": "200"})


# ── Fakes ──────────────────────────────────────────────────────────


class ScriptedProvider(ModelProvider):
    def __init__(self, deltas: list[str], error: Exception | None = None) -> None:
        super().__init__(PartnerConfig())
        self.deltas = deltas
        self.error = error
        self.calls: list[dict] = []

    async def stream(self, messages, *, api_key, model=None, cancel=None):
        self.calls.append({"messages": messages, "model": model})
        for delta in self.deltas:
            yield delta
        if self.error is not None:
            raise self.error


class StaticKeys:
    def __init__(self, key: str | None = "sk-test") -> None:
        self.key = key

    def get_stored_key(self):
        return self.key

    def prompt_and_store_key(self):
        return None


@pytest.fixture(autouse=True)
def no_user_config(tmp_path, monkeypatch):
    monkeypatch.setattr(config_loader, "USER_CONFIG_FILE", tmp_path / "absent.toml")


def _patch_session(provider: ModelProvider, key: str | None = "sk-test"):
    """Patch the CLI's session factory to use a scripted provider."""
    built: list[ChatSession] = []

    def factory(config):
        session = ChatSession(config, StaticKeys(key), provider=provider)
        built.append(session)
        return session

    return patch("partner.cli._build_session", side_effect=factory), built


# ── Global ─────────────────────────────────────────────────────────


class TestGlobal:
    def test_version(self):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_help(self):
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        assert "ask" in result.output
        assert "config" in result.output

    def test_no_subcommand_starts_repl(self):
        with patch("partner.repl.PartnerREPL.run") as run:
            result = runner.invoke(app, [])
        assert result.exit_code == 0
        run.assert_called_once()


# ── ask ────────────────────────────────────────────────────────────


class TestAsk:
    def test_streams_reply(self):
        provider = ScriptedProvider(["Hello", " world"])
        patcher, _ = _patch_session(provider)
        with patcher:
            result = runner.invoke(app, ["ask", "Say hello"])

        assert result.exit_code == 0, result.output
        assert "Partner is thinking" in result.output
        assert "Hello world" in result.output
        user = provider.calls[0]["messages"][1].content
        assert user == "User request\n\nSay hello"

    def test_intent_and_model(self):
        provider = ScriptedProvider(["ok"])
        patcher, _ = _patch_session(provider)
        with patcher:
            result = runner.invoke(app, ["ask", "this", "--intent", "explain", "--model", "gpt-4o"])

        assert result.exit_code == 0, result.output
        assert provider.calls[0]["model"] == "gpt-4o"
        assert provider.calls[0]["messages"][1].content.startswith("User called /explain")

    def test_file_selection_sent_as_context(self, tmp_path):
        path = tmp_path / "app.py"
        path.write_text("a = 1\nb = 2\nc = 3\n")
        provider = ScriptedProvider(["ok"])
        patcher, _ = _patch_session(provider)
        with patcher:
            result = runner.invoke(app, ["ask", "fix", "--file", str(path), "--lines", "2:3"])

        assert result.exit_code == 0, result.output
        user = provider.calls[0]["messages"][1].content
        assert "Selected code follows\n```\nb = 2\nc = 3\n```" in user

    def test_apply_writes_code_block(self, tmp_path):
        path = tmp_path / "app.py"
        path.write_text("old()\n")
        provider = ScriptedProvider(["Done:\n```python\nnew()\n```\n"])
        patcher, _ = _patch_session(provider)
        with patcher:
            result = runner.invoke(app, ["ask", "rewrite", "--file", str(path), "--apply"])

        assert result.exit_code == 0, result.output
        assert path.read_text() == "new()\n"
        assert "Applied code block" in result.output

    def test_apply_without_code_block_fails(self, tmp_path):
        path = tmp_path / "app.py"
        path.write_text("keep()\n")
        patcher, _ = _patch_session(ScriptedProvider(["no code"]))
        with patcher:
            result = runner.invoke(app, ["ask", "rewrite", "--file", str(path), "--apply"])

        assert result.exit_code == 1
        assert "No code block captured" in result.output
        assert path.read_text() == "keep()\n"

    def test_apply_requires_file(self):
        result = runner.invoke(app, ["ask", "x", "--apply"])
        assert result.exit_code == 1
        assert "--apply requires --file" in result.output

    def test_lines_requires_file(self):
        result = runner.invoke(app, ["ask", "x", "--lines", "1:2"])
        assert result.exit_code == 1
        assert "--lines requires --file" in result.output

    def test_invalid_lines(self, tmp_path):
        path = tmp_path / "app.py"
        path.write_text("x\n")
        result = runner.invoke(app, ["ask", "x", "--file", str(path), "--lines", "9:1"])
        assert result.exit_code == 1
        assert "Invalid line range" in result.output

    def test_lines_past_end_of_file(self, tmp_path):
        path = tmp_path / "app.py"
        path.write_text("a\nb\n")
        provider = ScriptedProvider(["never"])
        patcher, _ = _patch_session(provider)
        with patcher:
            result = runner.invoke(app, ["ask", "x", "--file", str(path), "--lines", "50:60"])

        assert result.exit_code == 1
        assert "outside" in result.output
        assert provider.calls == []

    def test_invalid_temperature(self):
        result = runner.invoke(app, ["ask", "x", "--temperature", "9"])
        assert result.exit_code == 1
        assert "Invalid option" in result.output

    def test_no_key_exits_nonzero(self):
        provider = ScriptedProvider(["never"])
        patcher, _ = _patch_session(provider, key=None)
        with patcher:
            result = runner.invoke(app, ["ask", "hi"])

        assert result.exit_code == 1
        assert "No OpenAI key set" in result.output
        assert provider.calls == []

    def test_request_error_exits_nonzero(self):
        provider = ScriptedProvider([], error=RequestError(500, "upstream down"))
        patcher, _ = _patch_session(provider)
        with patcher:
            result = runner.invoke(app, ["ask", "hi"])

        assert result.exit_code == 1
        assert "OpenAI request failed. OpenAI error 500 upstream down" in result.output


# ── config ─────────────────────────────────────────────────────────


class TestConfigCommands:
    def test_show(self):
        result = runner.invoke(app, ["config", "show"])
        assert result.exit_code == 0
        assert "gpt-4o-mini" in result.output
        assert "max_context_chars" in result.output

    def test_show_with_config_file(self, tmp_path):
        path = tmp_path / "partner.toml"
        path.write_text('[partner]\nmodel = "local-llama"\n')
        result = runner.invoke(app, ["--config", str(path), "config", "show"])
        assert result.exit_code == 0
        assert "local-llama" in result.output

    def test_bad_config_file(self, tmp_path):
        result = runner.invoke(app, ["--config", str(tmp_path / "missing.toml"), "config", "show"])
        assert result.exit_code == 1
        assert "Error loading config" in result.output

    def test_path(self):
        result = runner.invoke(app, ["config", "path"])
        assert result.exit_code == 0
        assert "defaults.toml" in result.output
        assert "keys.env" in result.output
