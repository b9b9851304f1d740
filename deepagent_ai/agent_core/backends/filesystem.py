from __future__ import annotations

"""On-disk backend confined to a root directory.

All paths are virtual: ``/`` maps to ``root_dir`` and every resolved path must
stay under it. Traversal segments (``..``), home-relative paths (``~``) and
symlinked targets are rejected. The checks return error strings through the
regular result types so the model sees them as ordinary tool output.
"""

import logging
import os
from datetime import datetime, timezone
from pathlib import Path, PurePosixPath
from typing import Iterator, List, Optional, Union

from ..errors import PathSecurityError
from ..schemas.domain import FileRecord
from .base import EditResult, FileInfo, GrepMatch, WriteResult
from .utils import (
    DEFAULT_READ_LIMIT,
    already_exists_error,
    format_lines_response,
    glob_matches,
    not_found_error,
    perform_string_replacement,
    validate_regex,
)

logger = logging.getLogger(__name__)

_NOFOLLOW = getattr(os, "O_NOFOLLOW", 0)


def _iso(ts: float) -> str:
    return datetime.fromtimestamp(ts, tz=timezone.utc).isoformat()


class FilesystemBackend:
    """Backend reading and writing real files under ``root_dir``."""

    def __init__(self, root_dir: Union[str, Path], *, max_file_size_mb: int = 10) -> None:
        self._root = Path(root_dir).expanduser().resolve()
        self._max_file_size_bytes = max_file_size_mb * 1024 * 1024

    @property
    def root_dir(self) -> Path:
        return self._root

    # ------------------------------------------------------------------
    # path handling
    # ------------------------------------------------------------------

    def _resolve_path(self, key: str) -> Path:
        """Map a virtual path onto the root, enforcing confinement.

        Raises:
            PathSecurityError: If the path uses ``..``/``~`` or resolves outside the root.
        """
        if key.startswith("~"):
            raise PathSecurityError(f"Path traversal not allowed: {key}")
        vpath = key if key.startswith("/") else "/" + key
        parts = PurePosixPath(vpath).parts
        if ".." in parts:
            raise PathSecurityError(f"Path traversal not allowed: {key}")

        full = self._root.joinpath(*parts[1:])
        # a symlinked leaf is judged by its parent; the caller rejects the link itself
        anchor = full.parent if full.is_symlink() else full
        resolved = anchor.resolve()
        if resolved != self._root and self._root not in resolved.parents:
            raise PathSecurityError(f"Path: {key} outside root directory: {self._root}")
        return full

    def _to_virtual(self, path: Path) -> str:
        relative = path.relative_to(self._root).as_posix()
        return "/" if relative == "." else "/" + relative

    def _walk_files(self, base: Path) -> Iterator[Path]:
        if base.is_file() and not base.is_symlink():
            yield base
            return
        for dirpath, dirnames, filenames in os.walk(base, followlinks=False):
            dirnames.sort()
            for name in sorted(filenames):
                candidate = Path(dirpath) / name
                if candidate.is_symlink() or not candidate.is_file():
                    continue
                yield candidate

    # ------------------------------------------------------------------
    # backend operations
    # ------------------------------------------------------------------

    async def list(self, path: str = "/") -> List[FileInfo]:
        try:
            base = self._resolve_path(path)
        except PathSecurityError:
            return []
        if not base.is_dir():
            return []

        infos: List[FileInfo] = []
        for child in base.iterdir():
            if child.is_symlink():
                continue
            try:
                st = child.stat()
            except OSError:
                continue
            if child.is_dir():
                infos.append(FileInfo(path=self._to_virtual(child).rstrip("/") + "/", is_dir=True, size=0, modified_at=_iso(st.st_mtime)))
            elif child.is_file():
                infos.append(FileInfo(path=self._to_virtual(child), is_dir=False, size=st.st_size, modified_at=_iso(st.st_mtime)))
        infos.sort(key=lambda fi: fi.path)
        return infos

    async def read(self, path: str, offset: int = 0, limit: int = DEFAULT_READ_LIMIT) -> str:
        try:
            full = self._resolve_path(path)
        except PathSecurityError as e:
            return f"Error: {e}"
        if full.is_symlink():
            return f"Error: Symlinks are not allowed: {path}"
        if not full.is_file():
            return not_found_error(path)

        try:
            content = self._read_text(full)
        except (OSError, UnicodeDecodeError) as e:
            return f"Error reading file '{path}': {e}"
        return format_lines_response(content.split("\n"), offset, limit)

    async def read_raw(self, path: str) -> FileRecord:
        full = self._resolve_path(path)
        if full.is_symlink() or not full.is_file():
            raise FileNotFoundError(path)
        st = full.stat()
        return FileRecord(
            lines=self._read_text(full).split("\n"),
            created_at=_iso(st.st_ctime),
            modified_at=_iso(st.st_mtime),
        )

    async def write(self, path: str, content: str) -> WriteResult:
        try:
            full = self._resolve_path(path)
        except PathSecurityError as e:
            return WriteResult(error=f"Error: {e}")
        if full.is_symlink():
            return WriteResult(error=f"Error: Symlinks are not allowed: {path}")
        if full.exists():
            return WriteResult(error=already_exists_error(path))

        try:
            full.parent.mkdir(parents=True, exist_ok=True)
            fd = os.open(full, os.O_WRONLY | os.O_CREAT | os.O_EXCL | _NOFOLLOW, 0o644)
            with os.fdopen(fd, "w", encoding="utf-8", newline="") as fh:
                fh.write(content)
        except FileExistsError:
            return WriteResult(error=already_exists_error(path))
        except OSError as e:
            return WriteResult(error=f"Error writing file '{path}': {e}")
        return WriteResult(path=path)

    async def edit(self, path: str, old_string: str, new_string: str, replace_all: bool = False) -> EditResult:
        try:
            full = self._resolve_path(path)
        except PathSecurityError as e:
            return EditResult(error=f"Error: {e}")
        if full.is_symlink():
            return EditResult(error=f"Error: Symlinks are not allowed: {path}")
        if not full.is_file():
            return EditResult(error=not_found_error(path))

        try:
            content = self._read_text(full)
        except (OSError, UnicodeDecodeError) as e:
            return EditResult(error=f"Error editing file '{path}': {e}")

        result = perform_string_replacement(content, old_string, new_string, replace_all)
        if isinstance(result, str):
            return EditResult(error=result)

        new_content, occurrences = result
        try:
            fd = os.open(full, os.O_WRONLY | os.O_TRUNC | _NOFOLLOW)
            with os.fdopen(fd, "w", encoding="utf-8", newline="") as fh:
                fh.write(new_content)
        except OSError as e:
            return EditResult(error=f"Error editing file '{path}': {e}")
        return EditResult(path=path, occurrences=occurrences)

    async def grep(self, pattern: str, path: str = "/", glob: Optional[str] = None) -> Union[List[GrepMatch], str]:
        regex = validate_regex(pattern)
        if isinstance(regex, str):
            return regex

        try:
            base = self._resolve_path(path)
        except PathSecurityError:
            return []
        if not base.exists():
            return []

        matches: List[GrepMatch] = []
        for file_path in self._walk_files(base):
            if glob and not glob_matches(glob, file_path.name):
                continue
            try:
                if file_path.stat().st_size > self._max_file_size_bytes:
                    continue
                content = self._read_text(file_path)
            except (OSError, UnicodeDecodeError):
                logger.debug("grep skipped unreadable file %s", file_path)
                continue
            virtual = self._to_virtual(file_path)
            for lineno, line in enumerate(content.split("\n"), start=1):
                if regex.search(line):
                    matches.append(GrepMatch(path=virtual, line=lineno, text=line))

        matches.sort(key=lambda m: (m.path, m.line))
        return matches

    async def glob(self, pattern: str, path: str = "/") -> List[FileInfo]:
        pattern = pattern.lstrip("/")
        try:
            base = self._resolve_path(path)
        except PathSecurityError:
            return []
        if not base.is_dir():
            return []

        infos: List[FileInfo] = []
        for file_path in self._walk_files(base):
            if not glob_matches(pattern, file_path.relative_to(base).as_posix()):
                continue
            try:
                st = file_path.stat()
            except OSError:
                continue
            infos.append(FileInfo(path=self._to_virtual(file_path), is_dir=False, size=st.st_size, modified_at=_iso(st.st_mtime)))

        infos.sort(key=lambda fi: fi.path)
        return infos

    @staticmethod
    def _read_text(path: Path) -> str:
        fd = os.open(path, os.O_RDONLY | _NOFOLLOW)
        with os.fdopen(fd, "r", encoding="utf-8", newline="") as fh:
            return fh.read()
