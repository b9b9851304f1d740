from __future__ import annotations

"""Backend contract.

A backend is a file-like store exposing the same six operations regardless of
where data lives. The orchestration core and the built-in tools depend on this
Protocol only.

Contract guidelines
-------------------

- All methods are async.
- Tool-domain failures are returned, never raised: ``write``/``edit`` report
  them in ``error``, ``read`` returns an ``"Error: ..."`` string and ``grep``
  returns a string instead of a match list. ``read_raw`` is the exception and
  raises ``FileNotFoundError`` because it serves programmatic callers.
- ``write`` is create-only; ``edit`` is the only content mutator.
- Paths are rooted (``/``-prefixed) strings. Directories are never stored;
  they are synthesized from path prefixes and reported with a trailing ``/``.
"""

from typing import Callable, List, Optional, Protocol, Union

from ..schemas.base import BaseSchema
from ..schemas.domain import AgentState, FileRecord


class FileInfo(BaseSchema):
    path: str
    is_dir: bool = False
    size: int = 0
    modified_at: str = ""


class GrepMatch(BaseSchema):
    path: str
    line: int
    text: str


class WriteResult(BaseSchema):
    path: Optional[str] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class EditResult(BaseSchema):
    path: Optional[str] = None
    occurrences: Optional[int] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class Backend(Protocol):
    """Uniform CRUD/search capability set over one storage strategy."""

    async def list(self, path: str = "/") -> List[FileInfo]:
        """
        List the immediate children of ``path`` (non-recursive).

        Args:
            path: Directory path to list.

        Returns:
            FileInfo entries sorted by path; directories end with ``/``.
        """
        ...

    async def read(self, path: str, offset: int = 0, limit: int = 2000) -> str:
        """
        Read a line-numbered slice of a file.

        Args:
            path: File path.
            offset: 0-based line to start from. An offset beyond the file length is an error.
            limit: Maximum number of lines.

        Returns:
            ``cat -n`` formatted text or an ``"Error: ..."`` string.
        """
        ...

    async def read_raw(self, path: str) -> FileRecord:
        """
        Return the stored record for ``path``.

        Raises:
            FileNotFoundError: If no file exists at ``path``.
        """
        ...

    async def write(self, path: str, content: str) -> WriteResult:
        """
        Create a new file. Never overwrites an existing one.

        Args:
            path: File path to create.
            content: Full text content.

        Returns:
            WriteResult with ``path`` on success or ``error`` on failure.
        """
        ...

    async def edit(self, path: str, old_string: str, new_string: str, replace_all: bool = False) -> EditResult:
        """
        Replace exact occurrences of ``old_string``.

        Fails if ``old_string`` is absent, or present more than once while
        ``replace_all`` is False.
        """
        ...

    async def grep(self, pattern: str, path: str = "/", glob: Optional[str] = None) -> Union[List[GrepMatch], str]:
        """
        Search file lines with a regular expression.

        Args:
            pattern: Regular expression. Invalid patterns are rejected before any I/O.
            path: File or directory to search under.
            glob: Optional glob matched against file basenames.

        Returns:
            Matches, or an error string for an invalid pattern.
        """
        ...

    async def glob(self, pattern: str, path: str = "/") -> List[FileInfo]:
        """
        Find files whose path relative to ``path`` matches a shell-style glob.

        Returns:
            FileInfo entries sorted lexicographically by path.
        """
        ...


BackendFactory = Callable[[AgentState], Backend]
