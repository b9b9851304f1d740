from __future__ import annotations

"""Ephemeral backend over ``AgentState.files``.

Files live in the run's state object and therefore share its lifetime; they
are persisted only indirectly, when the state is captured in a checkpoint.
"""

from typing import List, Optional, Union

from ..schemas.domain import AgentState, FileRecord
from .base import EditResult, FileInfo, GrepMatch, WriteResult
from .utils import (
    DEFAULT_READ_LIMIT,
    already_exists_error,
    file_infos,
    format_read_response,
    glob_search_files,
    grep_matches_from_files,
    list_directory,
    not_found_error,
    perform_string_replacement,
)


class StateBackend:
    """Backend holding a live reference to the run's ``AgentState``."""

    def __init__(self, state: AgentState) -> None:
        self._state = state

    @property
    def state(self) -> AgentState:
        return self._state

    async def list(self, path: str = "/") -> List[FileInfo]:
        return list_directory(self._state.files, path)

    async def read(self, path: str, offset: int = 0, limit: int = DEFAULT_READ_LIMIT) -> str:
        record = self._state.files.get(path)
        if record is None:
            return not_found_error(path)
        return format_read_response(record, offset, limit)

    async def read_raw(self, path: str) -> FileRecord:
        record = self._state.files.get(path)
        if record is None:
            raise FileNotFoundError(path)
        return record

    async def write(self, path: str, content: str) -> WriteResult:
        if path in self._state.files:
            return WriteResult(error=already_exists_error(path))
        self._state.files[path] = FileRecord.from_text(content)
        return WriteResult(path=path)

    async def edit(self, path: str, old_string: str, new_string: str, replace_all: bool = False) -> EditResult:
        record = self._state.files.get(path)
        if record is None:
            return EditResult(error=not_found_error(path))

        result = perform_string_replacement(record.text, old_string, new_string, replace_all)
        if isinstance(result, str):
            return EditResult(error=result)

        new_content, occurrences = result
        self._state.files[path] = record.with_text(new_content)
        return EditResult(path=path, occurrences=occurrences)

    async def grep(self, pattern: str, path: str = "/", glob: Optional[str] = None) -> Union[List[GrepMatch], str]:
        return grep_matches_from_files(self._state.files, pattern, path, glob)

    async def glob(self, pattern: str, path: str = "/") -> List[FileInfo]:
        paths = glob_search_files(self._state.files, pattern, path)
        return file_infos(self._state.files, paths)
