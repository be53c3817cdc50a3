"""Tests for the REPL entry point."""

import json

import pytest

from agent_bridge import cli
from agent_bridge._exceptions import ConfigError
from agent_bridge.agent import Agent
from agent_bridge.types.chat import Message


class StubAgent:
    """Records what the REPL asks of the agent."""

    provider_name = "local"
    model = "llama3.2"

    def __init__(self):
        self.cleared = False
        self.saved = []
        self.switched = []
        self.turns = []

    def clear_context(self):
        self.cleared = True

    def get_context(self):
        return [Message.user("hi"), Message.assistant("hello")]

    def switch_provider(self, name, model_key=None):
        if name == "nope":
            raise ConfigError('Unknown provider: "nope". Available providers: local')
        self.switched.append((name, model_key))

    async def save_context(self, reason=None):
        self.saved.append(reason)
        return "Successfully saved session context to session_context.txt"

    async def respond(self, text, *, on_token=None, on_tool=None):
        self.turns.append(text)
        on_token("echo: " + text)
        return "echo: " + text


class TestParser:
    def test_defaults(self):
        args = cli.build_parser().parse_args([])
        assert args.config == "providers.json"
        assert args.enable_tool == []
        assert not args.verbose

    def test_config_from_env(self, monkeypatch):
        monkeypatch.setenv("AGENT_BRIDGE_CONFIG", "/etc/agent/providers.json")
        assert cli.build_parser().parse_args([]).config == "/etc/agent/providers.json"

    def test_repeatable_tool_flags(self):
        args = cli.build_parser().parse_args(
            ["--enable-tool", "run_bash", "--enable-tool", "remove", "--disable-tool", "move"]
        )
        assert args.enable_tool == ["run_bash", "remove"]
        assert args.disable_tool == ["move"]


class TestCommands:
    @pytest.mark.asyncio
    async def test_exit_saves_with_reason(self, capsys):
        agent = StubAgent()
        assert await cli.handle_command(agent, "/exit") is False
        assert agent.saved == ["Exiting application"]
        assert "Goodbye!" in capsys.readouterr().out

    @pytest.mark.asyncio
    async def test_clear_and_context(self, capsys):
        agent = StubAgent()
        assert await cli.handle_command(agent, "/clear")
        assert await cli.handle_command(agent, "/context")

        out = capsys.readouterr().out
        assert agent.cleared
        assert "1. USER: hi" in out
        assert "2. ASSISTANT: hello" in out

    @pytest.mark.asyncio
    async def test_switch(self, capsys):
        agent = StubAgent()
        await cli.handle_command(agent, "/switch aws titan")
        await cli.handle_command(agent, "/switch nope")

        assert agent.switched == [("aws", "titan")]
        assert "Unknown provider" in capsys.readouterr().out


class TestRun:
    @pytest.mark.asyncio
    async def test_repl_session(self, monkeypatch, capsys):
        lines = iter(["", "hello there", "/exit"])
        monkeypatch.setattr("builtins.input", lambda prompt="": next(lines))
        agent = StubAgent()

        await cli.run(agent)

        assert agent.turns == ["hello there"]
        assert agent.saved == ["Exiting application"]
        assert "echo: hello there" in capsys.readouterr().out

    @pytest.mark.asyncio
    async def test_eof_exits(self, monkeypatch):
        def eof(prompt=""):
            raise EOFError

        monkeypatch.setattr("builtins.input", eof)
        agent = StubAgent()

        await cli.run(agent)

        assert agent.saved == ["Exiting application"]


class TestMain:
    def test_bad_config_exits_with_error(self, tmp_path, capsys):
        code = cli.main(["--config", str(tmp_path / "missing.json")])

        assert code == 1
        assert "Configuration file not found" in capsys.readouterr().err

    def test_tool_flags_applied(self, tmp_path, monkeypatch):
        path = tmp_path / "providers.json"
        path.write_text(json.dumps({
            "default": "local",
            "providers": [{"name": "local", "type": "ollama",
                           "models": [{"name": "Llama", "key": "llama3.2"}],
                           "defaultModel": "llama3.2"}],
        }))
        monkeypatch.chdir(tmp_path)
        args = cli.build_parser().parse_args(
            ["--config", str(path), "--enable-tool", "run_bash", "--disable-tool", "write_file"]
        )

        agent = cli._build_agent(args)

        assert isinstance(agent, Agent)
        assert agent.registry.is_enabled("run_bash")
        assert not agent.registry.is_enabled("write_file")
        assert agent.system_prompt.endswith(cli.CLI_SYSTEM_PROMPT)
