from __future__ import annotations

"""Backend over a namespaced key-value store.

Any store exposing ``get/put/delete/list(namespace)`` can back the file
contract. Records are stored as plain dicts (``FileRecord.model_dump()``) under
the namespace ``(namespace, "filesystem")`` so data written by one agent
survives across runs and threads that share the store.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Protocol, Sequence, Tuple, Union

from pydantic import ValidationError

from ..errors import StoreValueError
from ..schemas.domain import FileRecord
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
    validate_regex,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StoreItem:
    key: str
    value: Dict[str, Any]


class KeyValueStore(Protocol):
    """Minimal async key-value store interface with hierarchical namespaces."""

    async def get(self, namespace: Sequence[str], key: str) -> Optional[Dict[str, Any]]: ...

    async def put(self, namespace: Sequence[str], key: str, value: Dict[str, Any]) -> None: ...

    async def delete(self, namespace: Sequence[str], key: str) -> None: ...

    async def list(self, namespace: Sequence[str]) -> List[StoreItem]: ...


class InMemoryStore:
    """Process-local ``KeyValueStore`` keyed by ``(tuple(namespace), key)``."""

    def __init__(self) -> None:
        self._data: Dict[Tuple[Tuple[str, ...], str], Dict[str, Any]] = {}

    @staticmethod
    def _make_key(namespace: Sequence[str], key: str) -> Tuple[Tuple[str, ...], str]:
        return tuple(namespace), key

    async def get(self, namespace: Sequence[str], key: str) -> Optional[Dict[str, Any]]:
        value = self._data.get(self._make_key(namespace, key))
        return dict(value) if value is not None else None

    async def put(self, namespace: Sequence[str], key: str, value: Dict[str, Any]) -> None:
        self._data[self._make_key(namespace, key)] = dict(value)

    async def delete(self, namespace: Sequence[str], key: str) -> None:
        self._data.pop(self._make_key(namespace, key), None)

    async def list(self, namespace: Sequence[str]) -> List[StoreItem]:
        wanted = tuple(namespace)
        return [StoreItem(key=key, value=dict(value)) for (ns, key), value in self._data.items() if ns == wanted]

    def clear(self) -> None:
        self._data.clear()

    def size(self) -> int:
        return len(self._data)


class StoreBackend:
    """Persistent backend storing ``FileRecord`` dicts in a ``KeyValueStore``.

    ``AgentState.files`` is ignored; the store is the single source of truth.
    """

    def __init__(self, store: KeyValueStore, *, namespace: str = "default") -> None:
        self._store = store
        self._namespace: Tuple[str, str] = (namespace, "filesystem")

    @property
    def namespace(self) -> Tuple[str, str]:
        return self._namespace

    @staticmethod
    def _to_record(path: str, value: Dict[str, Any]) -> FileRecord:
        try:
            return FileRecord.model_validate(value)
        except ValidationError as e:
            raise StoreValueError(f"Store item '{path}' is not a valid file record: {e}") from e

    async def _get_record(self, path: str) -> Optional[FileRecord]:
        value = await self._store.get(self._namespace, path)
        if value is None:
            return None
        return self._to_record(path, value)

    async def _put_record(self, path: str, record: FileRecord) -> None:
        await self._store.put(self._namespace, path, record.model_dump())

    async def _all_files(self) -> Dict[str, FileRecord]:
        files: Dict[str, FileRecord] = {}
        for item in await self._store.list(self._namespace):
            try:
                files[item.key] = self._to_record(item.key, item.value)
            except StoreValueError:
                logger.warning("Skipping malformed store item %s", item.key, exc_info=True)
        return files

    async def list(self, path: str = "/") -> List[FileInfo]:
        return list_directory(await self._all_files(), path)

    async def read(self, path: str, offset: int = 0, limit: int = DEFAULT_READ_LIMIT) -> str:
        try:
            record = await self._get_record(path)
        except StoreValueError as e:
            return f"Error: {e}"
        if record is None:
            return not_found_error(path)
        return format_read_response(record, offset, limit)

    async def read_raw(self, path: str) -> FileRecord:
        record = await self._get_record(path)
        if record is None:
            raise FileNotFoundError(path)
        return record

    async def write(self, path: str, content: str) -> WriteResult:
        if await self._store.get(self._namespace, path) is not None:
            return WriteResult(error=already_exists_error(path))
        await self._put_record(path, FileRecord.from_text(content))
        return WriteResult(path=path)

    async def edit(self, path: str, old_string: str, new_string: str, replace_all: bool = False) -> EditResult:
        try:
            record = await self._get_record(path)
        except StoreValueError as e:
            return EditResult(error=f"Error: {e}")
        if record is None:
            return EditResult(error=not_found_error(path))

        result = perform_string_replacement(record.text, old_string, new_string, replace_all)
        if isinstance(result, str):
            return EditResult(error=result)

        new_content, occurrences = result
        await self._put_record(path, record.with_text(new_content))
        return EditResult(path=path, occurrences=occurrences)

    async def grep(self, pattern: str, path: str = "/", glob: Optional[str] = None) -> Union[List[GrepMatch], str]:
        invalid = validate_regex(pattern)
        if isinstance(invalid, str):
            return invalid
        return grep_matches_from_files(await self._all_files(), pattern, path, glob)

    async def glob(self, pattern: str, path: str = "/") -> List[FileInfo]:
        files = await self._all_files()
        return file_infos(files, glob_search_files(files, pattern, path))

    async def delete_file(self, path: str) -> None:
        await self._store.delete(self._namespace, path)
