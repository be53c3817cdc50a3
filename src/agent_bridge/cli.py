"""Line-oriented REPL: ``agent-bridge [--config PATH] [--provider NAME] ...``."""
from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from typing import Optional, Sequence

from agent_bridge._exceptions import ConfigError, ProviderError
from agent_bridge.agent import Agent
from agent_bridge.agents_md import (
    compose_system_prompt,
    discover_agents_md_files,
    load_agents_md_content,
)
from agent_bridge.types.chat import Message
from agent_bridge.types.tool import ToolCall

__all__ = ["build_parser", "main", "run", "handle_command"]

logger = logging.getLogger("agent_bridge.cli")

CLI_SYSTEM_PROMPT = (
    "You are a helpful AI coding assistant with access to tools. "
    "Provide clear and concise answers.\n\n"
    "When you use a tool, you will see the result and can use that information to "
    "continue helping the user. After using tools and completing the user's request, "
    "provide a final response summarizing what you did."
)
CONFIG_ENV_VAR = "AGENT_BRIDGE_CONFIG"
EXIT_REASON = "Exiting application"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="agent-bridge",
        description="Chat with an LLM agent backed by Ollama, Bedrock or OpenRouter.",
    )
    parser.add_argument(
        "--config",
        default=os.environ.get(CONFIG_ENV_VAR, "providers.json"),
        help=f"Provider config document (default: ${CONFIG_ENV_VAR} or ./providers.json)",
    )
    parser.add_argument("--provider", help="Provider name (default: the config's default)")
    parser.add_argument("--model", help="Model key (default: the provider's defaultModel)")
    parser.add_argument("--system-prompt", help="Base system prompt, before AGENTS.md content")
    parser.add_argument("--session-file", help="Where to save the session transcript")
    parser.add_argument(
        "--enable-tool", action="append", default=[], metavar="NAME",
        help="Enable a tool that is off by default (repeatable)",
    )
    parser.add_argument(
        "--disable-tool", action="append", default=[], metavar="NAME",
        help="Disable a tool (repeatable)",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    return parser


def _print_context(messages: Sequence[Message]) -> None:
    if not messages:
        print("No session context.\n")
        return
    print("Session Context:")
    for index, msg in enumerate(messages, start=1):
        content = msg.content
        if msg.role == "tool" and msg.tool_results:
            content = "; ".join(f"{r.tool_name}: {r.content}" for r in msg.tool_results)
        print(f"{index}. {msg.role.upper()}: {content}")
    print()


async def handle_command(agent: Agent, line: str) -> bool:
    """
    Run one REPL command. Returns False when the session should end.
    """
    command, *rest = line.split()

    if command == "/exit":
        print("Saving session context...")
        print(await agent.save_context(EXIT_REASON))
        print("Goodbye!")
        return False

    if command == "/clear":
        agent.clear_context()
        print("Session context cleared.\n")
    elif command == "/context":
        _print_context(agent.get_context())
    elif command == "/switch":
        if not rest or len(rest) > 2:
            print("Usage: /switch NAME [MODEL_KEY]\n")
        else:
            try:
                agent.switch_provider(*rest)
            except (ConfigError, ProviderError) as exc:
                print(f"Error: {exc}\n")
            else:
                print(f"Switched to {agent.provider_name} ({agent.model}).\n")
    else:
        print(f"Unknown command: {command}\n")
    return True


def _on_token(token: str) -> None:
    sys.stdout.write(token)
    sys.stdout.flush()


def _on_tool(call: ToolCall, result: str) -> None:
    preview = result[:100] + ("..." if len(result) > 100 else "")
    print(f"\n[Executing tool: {call.name}]\n[Tool result: {preview}]", flush=True)


async def run(agent: Agent) -> None:
    print(f"AI Agent started ({agent.provider_name}, {agent.model}). "
          "Type your message and press Enter.")
    print("Commands: /clear - clear context, /context - show context, "
          "/switch NAME [KEY] - change provider, /exit - quit\n")

    while True:
        try:
            line = (await asyncio.to_thread(input, "You: ")).strip()
        except EOFError:
            line = "/exit"

        if not line:
            continue
        if line.startswith("/"):
            if not await handle_command(agent, line):
                return
            continue

        sys.stdout.write("Assistant: ")
        try:
            await agent.respond(line, on_token=_on_token, on_tool=_on_tool)
            print("\n")
        except ProviderError as exc:
            print(f"\nError: {exc}\n", file=sys.stderr)


def _build_agent(args: argparse.Namespace) -> Agent:
    agents_md = load_agents_md_content(discover_agents_md_files())
    agent = Agent(
        args.config,
        provider_name=args.provider,
        model_key=args.model,
        system_prompt=compose_system_prompt(agents_md, args.system_prompt or CLI_SYSTEM_PROMPT),
        session_file=args.session_file,
    )
    for name in args.enable_tool:
        if not agent.registry.has_tool(name):
            logger.warning("Unknown tool %s; available: %s", name, ", ".join(agent.registry.tool_names))
        agent.registry.enable(name)
    for name in args.disable_tool:
        agent.registry.disable(name)
    return agent


async def _amain(args: argparse.Namespace) -> int:
    try:
        agent = _build_agent(args)
    except (ConfigError, ProviderError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    async with agent:
        await run(agent)
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        return asyncio.run(_amain(args))
    except KeyboardInterrupt:
        print()
        return 130


if __name__ == "__main__":
    sys.exit(main())
