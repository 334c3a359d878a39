"""System prompt tests: working directory, tool list, restricted mode, project instructions."""

from agentweb.services.system_prompt import build_system_prompt, build_tool_section
from agentweb.services.tools_registry import ToolPolicy


def test_prompt_states_working_directory():
    prompt = build_system_prompt("/srv/project", ToolPolicy())
    assert "Current working directory: /srv/project" in prompt
    assert "## Project instructions" not in prompt


def test_tool_section_lists_only_enabled_tools():
    section = build_tool_section(ToolPolicy(file_system=False, bash=False))
    assert "- **Read**:" in section
    assert "- **Bash**:" not in section
    assert "- **Write**:" not in section
    assert "restricted mode" in section


def test_full_mode_has_no_restriction_note():
    assert "restricted mode" not in build_tool_section(ToolPolicy())


def test_project_instructions_come_last():
    prompt = build_system_prompt("/w", ToolPolicy(), "  Use tabs.\n")
    assert prompt.endswith("## Project instructions\n\nUse tabs.")


def test_blank_instructions_are_ignored():
    assert "## Project instructions" not in build_system_prompt("/w", ToolPolicy(), "   ")
