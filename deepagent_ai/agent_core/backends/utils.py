from __future__ import annotations

"""Helpers shared by the backend implementations.

The helpers operate on plain ``path -> FileRecord`` mappings so the in-memory
and key-value backends produce identical listings, search results and error
strings. The on-disk backend reuses the formatting, replacement and glob
matching helpers.
"""

import posixpath
import re
from functools import lru_cache
from typing import Iterable, List, Mapping, Optional, Pattern, Sequence, Tuple, Union

from ..schemas.domain import FileRecord
from .base import FileInfo, GrepMatch

DEFAULT_READ_LIMIT = 2000
MAX_LINE_LENGTH = 2000
LINE_NUMBER_WIDTH = 6
EMPTY_CONTENT_WARNING = "System reminder: File exists but has empty contents"


def already_exists_error(path: str) -> str:
    return (
        f"Cannot write to {path} because it already exists. "
        "Read and then make an edit, or write to a new path."
    )


def not_found_error(path: str) -> str:
    return f"Error: File '{path}' not found"


def normalize_dir(path: str) -> str:
    """Return ``path`` as a rooted directory prefix ending with ``/``."""
    if not path:
        return "/"
    if not path.startswith("/"):
        path = "/" + path
    return path if path.endswith("/") else path + "/"


def format_content_with_line_numbers(lines: Sequence[str], start_line: int = 1) -> str:
    out = []
    for i, line in enumerate(lines):
        out.append(f"{i + start_line:{LINE_NUMBER_WIDTH}d}\t{line[:MAX_LINE_LENGTH]}")
    return "\n".join(out)


def check_empty_content(content: str) -> Optional[str]:
    if not content or content.strip() == "":
        return EMPTY_CONTENT_WARNING
    return None


def format_lines_response(lines: Sequence[str], offset: int = 0, limit: int = DEFAULT_READ_LIMIT) -> str:
    """Render a line-numbered slice, or the offset/empty-content message."""
    empty = check_empty_content("\n".join(lines))
    if empty:
        return empty

    if offset < 0:
        offset = 0
    if offset >= len(lines):
        return f"Error: Line offset {offset} exceeds file length ({len(lines)} lines)"

    end = min(offset + max(limit, 0), len(lines))
    return format_content_with_line_numbers(lines[offset:end], offset + 1)


def format_read_response(record: FileRecord, offset: int = 0, limit: int = DEFAULT_READ_LIMIT) -> str:
    return format_lines_response(record.lines, offset, limit)


def perform_string_replacement(
    content: str, old_string: str, new_string: str, replace_all: bool
) -> Union[Tuple[str, int], str]:
    """Exact (non-regex) replacement.

    Returns:
        ``(new_content, occurrences)`` on success, otherwise an error string.
    """
    occurrences = content.count(old_string) if old_string else 0
    if occurrences == 0:
        return f"Error: String not found in file: '{old_string}'"
    if occurrences > 1 and not replace_all:
        return (
            f"Error: String '{old_string}' appears {occurrences} times in file. "
            "Use replace_all=True to replace all instances, or provide a more specific string with surrounding context."
        )
    if replace_all:
        return content.replace(old_string, new_string), occurrences
    return content.replace(old_string, new_string, 1), 1


def _translate_glob(pattern: str) -> str:
    i, n = 0, len(pattern)
    out: List[str] = []
    while i < n:
        c = pattern[i]
        if c == "*":
            if pattern.startswith("**", i):
                i += 2
                if i < n and pattern[i] == "/":
                    i += 1
                    # zero or more whole directories
                    out.append("(?:.*/)?")
                else:
                    out.append(".*")
                continue
            out.append("[^/]*")
        elif c == "?":
            out.append("[^/]")
        elif c == "[":
            j = pattern.find("]", i + 1)
            if j == -1:
                out.append(re.escape(c))
            else:
                body = pattern[i + 1 : j].replace("\\", "\\\\")
                if body.startswith("!"):
                    body = "^" + body[1:]
                out.append(f"[{body}]")
                i = j + 1
                continue
        elif c == "{":
            j = pattern.find("}", i + 1)
            if j == -1:
                out.append(re.escape(c))
            else:
                alternatives = pattern[i + 1 : j].split(",")
                out.append("(?:" + "|".join(_translate_glob(a) for a in alternatives) + ")")
                i = j + 1
                continue
        else:
            out.append(re.escape(c))
        i += 1
    return "".join(out)


@lru_cache(maxsize=256)
def compile_glob(pattern: str) -> Pattern[str]:
    """Compile a shell-style glob where ``*`` and ``?`` never cross ``/`` and ``**`` does."""
    return re.compile(_translate_glob(pattern), re.DOTALL)


def glob_matches(pattern: str, relative_path: str) -> bool:
    return compile_glob(pattern).fullmatch(relative_path) is not None


def validate_regex(pattern: str) -> Union[Pattern[str], str]:
    try:
        return re.compile(pattern)
    except re.error as e:
        return f"Invalid regex pattern: {e}"


def _under(path: str, base: str) -> bool:
    return base == "/" or path == base.rstrip("/") or path.startswith(normalize_dir(base))


def list_directory(files: Mapping[str, FileRecord], path: str) -> List[FileInfo]:
    """Aggregate the immediate children of ``path`` from a flat path mapping."""
    prefix = normalize_dir(path)
    infos: List[FileInfo] = []
    subdirs = set()

    for key, record in files.items():
        if not key.startswith(prefix):
            continue
        relative = key[len(prefix) :]
        if "/" in relative:
            subdirs.add(prefix + relative.split("/", 1)[0] + "/")
            continue
        infos.append(FileInfo(path=key, is_dir=False, size=record.size, modified_at=record.modified_at))

    for subdir in subdirs:
        infos.append(FileInfo(path=subdir, is_dir=True, size=0, modified_at=""))

    infos.sort(key=lambda fi: fi.path)
    return infos


def grep_matches_from_files(
    files: Mapping[str, FileRecord], pattern: str, path: str = "/", glob: Optional[str] = None
) -> Union[List[GrepMatch], str]:
    regex = validate_regex(pattern)
    if isinstance(regex, str):
        return regex

    matches: List[GrepMatch] = []
    for key in sorted(files):
        if not _under(key, path):
            continue
        if glob and not glob_matches(glob, posixpath.basename(key)):
            continue
        for lineno, line in enumerate(files[key].lines, start=1):
            if regex.search(line):
                matches.append(GrepMatch(path=key, line=lineno, text=line))
    return matches


def glob_search_files(files: Mapping[str, FileRecord], pattern: str, path: str = "/") -> List[str]:
    """Return the sorted paths under ``path`` whose relative path matches ``pattern``."""
    pattern = pattern.lstrip("/")
    prefix = normalize_dir(path)
    matched = []
    for key in files:
        if not key.startswith(prefix):
            continue
        if glob_matches(pattern, key[len(prefix) :]):
            matched.append(key)
    return sorted(matched)


def file_infos(files: Mapping[str, FileRecord], paths: Iterable[str]) -> List[FileInfo]:
    infos = []
    for p in paths:
        record = files.get(p)
        infos.append(
            FileInfo(
                path=p,
                is_dir=False,
                size=record.size if record is not None else 0,
                modified_at=record.modified_at if record is not None else "",
            )
        )
    return infos
