from __future__ import annotations

"""Routing backend that delegates by path prefix.

``CompositeBackend`` owns no storage. Each path resolves to exactly one
delegate by the longest registered prefix; the prefix is stripped before the
call and re-added to every path in the result. Paths without a matching prefix
go to the default delegate.

Example::

    CompositeBackend(
        default=StateBackend(state),
        routes={"/memories/": StoreBackend(store)},
    )
"""

from typing import Dict, List, Mapping, Optional, Tuple, Union

from ..schemas.domain import FileRecord
from .base import Backend, EditResult, FileInfo, GrepMatch, WriteResult
from .utils import DEFAULT_READ_LIMIT, glob_matches, normalize_dir


class CompositeBackend:
    def __init__(self, default: Backend, routes: Mapping[str, Backend]) -> None:
        self._default = default
        self._routes: Dict[str, Backend] = {normalize_dir(prefix): backend for prefix, backend in routes.items()}
        self._sorted_prefixes: List[str] = sorted(self._routes, key=len, reverse=True)

    @property
    def default(self) -> Backend:
        return self._default

    @property
    def routes(self) -> Dict[str, Backend]:
        return dict(self._routes)

    def _route(self, path: str) -> Tuple[Backend, Optional[str], str]:
        """Return ``(delegate, matched prefix or None, delegate-relative path)``."""
        for prefix in self._sorted_prefixes:
            if path == prefix.rstrip("/"):
                return self._routes[prefix], prefix, "/"
            if path.startswith(prefix):
                return self._routes[prefix], prefix, "/" + path[len(prefix) :]
        return self._default, None, path

    @staticmethod
    def _restore(prefix: Optional[str], path: str) -> str:
        if prefix is None:
            return path
        return prefix.rstrip("/") + path

    def _restore_infos(self, prefix: Optional[str], infos: List[FileInfo]) -> List[FileInfo]:
        if prefix is None:
            return infos
        return [fi.model_copy(update={"path": self._restore(prefix, fi.path)}) for fi in infos]

    def _routes_under(self, path: str) -> List[str]:
        base = normalize_dir(path)
        return [prefix for prefix in self._sorted_prefixes if prefix.startswith(base)]

    async def list(self, path: str = "/") -> List[FileInfo]:
        backend, prefix, inner = self._route(path)
        if prefix is not None:
            return self._restore_infos(prefix, await backend.list(inner))

        infos = {fi.path: fi for fi in await self._default.list(path)}
        base = normalize_dir(path)
        for route_prefix in self._routes_under(path):
            child = route_prefix[len(base) :].split("/", 1)[0]
            entry = base + child + "/"
            infos.setdefault(entry, FileInfo(path=entry, is_dir=True, size=0, modified_at=""))
        return sorted(infos.values(), key=lambda fi: fi.path)

    async def read(self, path: str, offset: int = 0, limit: int = DEFAULT_READ_LIMIT) -> str:
        backend, _, inner = self._route(path)
        return await backend.read(inner, offset, limit)

    async def read_raw(self, path: str) -> FileRecord:
        backend, _, inner = self._route(path)
        return await backend.read_raw(inner)

    async def write(self, path: str, content: str) -> WriteResult:
        backend, prefix, inner = self._route(path)
        result = await backend.write(inner, content)
        if result.path is not None:
            result = result.model_copy(update={"path": self._restore(prefix, result.path)})
        return result

    async def edit(self, path: str, old_string: str, new_string: str, replace_all: bool = False) -> EditResult:
        backend, prefix, inner = self._route(path)
        result = await backend.edit(inner, old_string, new_string, replace_all)
        if result.path is not None:
            result = result.model_copy(update={"path": self._restore(prefix, result.path)})
        return result

    async def grep(self, pattern: str, path: str = "/", glob: Optional[str] = None) -> Union[List[GrepMatch], str]:
        backend, prefix, inner = self._route(path)
        if prefix is not None:
            routed = await backend.grep(pattern, inner, glob)
            if isinstance(routed, str):
                return routed
            return [m.model_copy(update={"path": self._restore(prefix, m.path)}) for m in routed]

        found = await self._default.grep(pattern, path, glob)
        if isinstance(found, str):
            return found
        matches = list(found)
        for route_prefix in self._routes_under(path):
            routed = await self._routes[route_prefix].grep(pattern, "/", glob)
            if isinstance(routed, str):
                return routed
            matches.extend(m.model_copy(update={"path": self._restore(route_prefix, m.path)}) for m in routed)
        matches.sort(key=lambda m: (m.path, m.line))
        return matches

    async def glob(self, pattern: str, path: str = "/") -> List[FileInfo]:
        backend, prefix, inner = self._route(path)
        if prefix is not None:
            return self._restore_infos(prefix, await backend.glob(pattern, inner))

        infos = list(await self._default.glob(pattern, path))
        base = normalize_dir(path)
        for route_prefix in self._routes_under(path):
            # re-anchor the pattern so it is evaluated relative to ``path`` as in the default
            relative_prefix = route_prefix[len(base) :]
            for fi in await self._routes[route_prefix].glob("**/*", "/"):
                full = self._restore(route_prefix, fi.path)
                if glob_matches(pattern.lstrip("/"), relative_prefix + fi.path.lstrip("/")):
                    infos.append(fi.model_copy(update={"path": full}))
        infos.sort(key=lambda fi: fi.path)
        return infos
