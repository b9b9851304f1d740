from __future__ import annotations

import pytest

from deepagent_ai.agent_core.backends.state import StateBackend
from deepagent_ai.agent_core.backends.utils import EMPTY_CONTENT_WARNING
from deepagent_ai.agent_core.schemas.domain import AgentState, FileRecord


@pytest.fixture
def state() -> AgentState:
    return AgentState()


@pytest.fixture
def backend(state: AgentState) -> StateBackend:
    return StateBackend(state)


@pytest.mark.asyncio
async def test_write_then_read_returns_numbered_lines(backend: StateBackend, state: AgentState) -> None:
    res = await backend.write("/notes.txt", "alpha\nbeta")
    assert res.ok and res.path == "/notes.txt"
    assert state.files["/notes.txt"].lines == ["alpha", "beta"]

    out = await backend.read("/notes.txt")
    assert out == "     1\talpha\n     2\tbeta"


@pytest.mark.asyncio
async def test_write_is_create_only(backend: StateBackend, state: AgentState) -> None:
    await backend.write("/a.txt", "first")
    res = await backend.write("/a.txt", "second")
    assert not res.ok
    assert "already exists" in res.error
    assert state.files["/a.txt"].text == "first"


@pytest.mark.asyncio
async def test_read_missing_file_and_offsets(backend: StateBackend) -> None:
    assert await backend.read("/missing.txt") == "Error: File '/missing.txt' not found"

    await backend.write("/lines.txt", "\n".join(f"l{i}" for i in range(1, 6)))
    page = await backend.read("/lines.txt", offset=2, limit=2)
    assert page == "     3\tl3\n     4\tl4"

    err = await backend.read("/lines.txt", offset=5)
    assert err == "Error: Line offset 5 exceeds file length (5 lines)"


@pytest.mark.asyncio
async def test_read_empty_file_returns_reminder(backend: StateBackend) -> None:
    await backend.write("/empty.txt", "")
    assert await backend.read("/empty.txt") == EMPTY_CONTENT_WARNING


@pytest.mark.asyncio
async def test_read_raw(backend: StateBackend) -> None:
    await backend.write("/r.txt", "x\ny")
    record = await backend.read_raw("/r.txt")
    assert isinstance(record, FileRecord)
    assert record.text == "x\ny"
    with pytest.raises(FileNotFoundError):
        await backend.read_raw("/nope.txt")


@pytest.mark.asyncio
async def test_edit_exact_replacement_rules(backend: StateBackend, state: AgentState) -> None:
    await backend.write("/e.txt", "foo bar foo")

    ambiguous = await backend.edit("/e.txt", "foo", "baz")
    assert ambiguous.error.startswith("Error: String 'foo' appears 2 times in file.")

    missing = await backend.edit("/e.txt", "qux", "baz")
    assert missing.error == "Error: String not found in file: 'qux'"

    single = await backend.edit("/e.txt", "bar", "BAR")
    assert single.ok and single.occurrences == 1

    everything = await backend.edit("/e.txt", "foo", "baz", replace_all=True)
    assert everything.occurrences == 2
    assert state.files["/e.txt"].text == "baz BAR baz"

    not_found = await backend.edit("/nothing.txt", "a", "b")
    assert not_found.error == "Error: File '/nothing.txt' not found"


@pytest.mark.asyncio
async def test_edit_keeps_created_at(backend: StateBackend, state: AgentState) -> None:
    await backend.write("/t.txt", "one")
    created = state.files["/t.txt"].created_at
    await backend.edit("/t.txt", "one", "two")
    assert state.files["/t.txt"].created_at == created


@pytest.mark.asyncio
async def test_list_is_non_recursive_with_directories(backend: StateBackend) -> None:
    await backend.write("/a.txt", "a")
    await backend.write("/src/main.py", "print(1)")
    await backend.write("/src/pkg/mod.py", "x = 1")

    root = await backend.list("/")
    assert [fi.path for fi in root] == ["/a.txt", "/src/"]
    assert root[1].is_dir

    src = await backend.list("/src")
    assert [fi.path for fi in src] == ["/src/main.py", "/src/pkg/"]
    assert src[0].size == len("print(1)")


@pytest.mark.asyncio
async def test_grep_and_glob(backend: StateBackend) -> None:
    await backend.write("/src/a.py", "import os\nprint('x')")
    await backend.write("/src/b.txt", "import nothing")
    await backend.write("/docs/readme.md", "no match here")

    matches = await backend.grep("^import", "/", glob="*.py")
    assert [(m.path, m.line, m.text) for m in matches] == [("/src/a.py", 1, "import os")]

    invalid = await backend.grep("([", "/")
    assert isinstance(invalid, str) and invalid.startswith("Invalid regex pattern")

    infos = await backend.glob("**/*.py")
    assert [fi.path for fi in infos] == ["/src/a.py"]

    under_src = await backend.glob("*", "/src")
    assert [fi.path for fi in under_src] == ["/src/a.py", "/src/b.txt"]
