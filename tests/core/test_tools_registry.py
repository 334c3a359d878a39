"""Tools Registry tests: the static catalog and the deployment tool policy.

Tests cover:
    - Catalog holds 19 uniquely named tools, each with an object input schema
    - Full mode enables everything; restricted mode keeps read-only tools
    - Definitions keep catalog order (prompt caching depends on it)
    - Disabled tools get a readable refusal message
"""

from agentweb.config import Settings
from agentweb.core.domain_types import ToolMode
from agentweb.services.tools_registry import (
    ALL_TOOLS, READ_ONLY_TOOLS, TOOL_NAMES, ToolPolicy, describe_tool, requires_confirmation,
)


def test_catalog_has_nineteen_unique_tools():
    names = [t["name"] for t in ALL_TOOLS]
    assert len(names) == 19
    assert len(set(names)) == 19
    assert set(names) == TOOL_NAMES


def test_every_tool_has_object_schema():
    for tool in ALL_TOOLS:
        assert tool["description"], tool["name"]
        schema = tool["input_schema"]
        assert schema["type"] == "object"
        for field in schema.get("required", []):
            assert field in schema["properties"], (tool["name"], field)


def test_full_policy_enables_everything():
    policy = ToolPolicy()
    assert policy.mode == ToolMode.FULL
    assert [t["name"] for t in policy.tool_definitions()] == [t["name"] for t in ALL_TOOLS]


def test_restricted_policy_keeps_read_only_tools():
    policy = ToolPolicy(file_system=False, bash=True)
    assert policy.mode == ToolMode.RESTRICTED
    names = {t["name"] for t in policy.tool_definitions()}
    assert READ_ONLY_TOOLS <= names
    assert "Bash" in names
    assert not {"Write", "Edit", "MultiEdit", "NotebookEdit", "TodoWrite"} & names


def test_policy_from_settings():
    policy = ToolPolicy.from_settings(Settings(tools_bash=False))
    assert policy.file_system is True
    assert not policy.is_enabled("Bash")


def test_disabled_messages():
    policy = ToolPolicy(file_system=False, bash=False)
    assert "restricted mode" in policy.disabled_message("Bash")
    assert policy.disabled_message("TodoWrite") == (
        "Tool 'TodoWrite' is disabled. Current tool mode: restricted."
    )


def test_describe_and_confirmation():
    assert describe_tool("Bash", {"command": "ls"}) == "Run command: ls"
    assert describe_tool("MultiEdit", {"file_path": "a.py", "edits": [{}, {}]}) == (
        "Edit file (2 edits): a.py"
    )
    assert describe_tool("Ls", {}) == "List directory: ."
    assert describe_tool("Mystery", {}) == "Run: Mystery"
    assert requires_confirmation("Write")
    assert not requires_confirmation("Read")
