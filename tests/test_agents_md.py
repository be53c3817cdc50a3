"""Tests for AGENTS.md discovery and prompt composition."""

from agent_bridge.agents_md import (
    compose_system_prompt,
    discover_agents_md_files,
    load_agents_md_content,
)


class TestAgentsMd:
    def test_discovery_is_root_most_first(self, tmp_path):
        tmp_path = tmp_path.resolve()
        nested = tmp_path / "repo" / "pkg"
        nested.mkdir(parents=True)
        (tmp_path / "AGENTS.md").write_text("outer")
        (tmp_path / "repo" / "pkg" / "AGENTS.md").write_text("inner")

        found = discover_agents_md_files(nested)

        assert found[-2:] == [tmp_path / "AGENTS.md", nested / "AGENTS.md"]

    def test_load_content_headings(self, tmp_path):
        first, second = tmp_path / "a.md", tmp_path / "b.md"
        first.write_text("one")
        second.write_text("two")

        content = load_agents_md_content([first, second])

        assert content == (
            f"## Project Instructions (from {first})\n\none\n\n"
            f"## Project Instructions (from {second})\n\ntwo"
        )

    def test_load_nothing(self):
        assert load_agents_md_content([]) == ""

    def test_compose(self):
        assert compose_system_prompt("", "default") == "default"
        assert compose_system_prompt("rules", "default") == "rules\n\ndefault"
