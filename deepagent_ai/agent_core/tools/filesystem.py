from __future__ import annotations

"""Built-in filesystem tools.

Every tool goes through ``ToolContext.backend`` so the same tool set works
over in-memory, on-disk, store-backed and composite storage. Backend error
strings are returned to the model verbatim.
"""

from typing import List, Optional

from pydantic import BaseModel, Field

from ..backends.base import GrepMatch
from ..schemas.events import (
    FileEditedEvent,
    FileReadEvent,
    FileWriteStartEvent,
    FileWrittenEvent,
    GlobEvent,
    GrepEvent,
    LsEvent,
)
from .base import Tool, ToolContext


class LsArgs(BaseModel):
    path: str = Field(default="/", description="Directory path to list (default: /)")


class ReadFileArgs(BaseModel):
    file_path: str = Field(..., description="Absolute path of the file to read, e.g. '/src/main.py'")
    offset: int = Field(default=0, ge=0, description="Line offset to start reading from (0-indexed)")
    limit: int = Field(default=2000, ge=1, description="Maximum number of lines to read")


class WriteFileArgs(BaseModel):
    file_path: str = Field(..., description="Absolute path of the new file, e.g. '/notes/plan.md'")
    content: str = Field(..., description="Content to write to the file")


class EditFileArgs(BaseModel):
    file_path: str = Field(..., description="Absolute path of the file to edit")
    old_string: str = Field(..., description="Exact text to replace")
    new_string: str = Field(..., description="Replacement text")
    replace_all: bool = Field(default=False, description="Replace every occurrence instead of exactly one")


class GlobArgs(BaseModel):
    pattern: str = Field(..., description="Glob pattern, e.g. '*.py' or '**/*.md'")
    path: str = Field(default="/", description="Base path to search from (default: /)")


class GrepArgs(BaseModel):
    pattern: str = Field(..., description="Regular expression to search for")
    path: str = Field(default="/", description="Base path to search from (default: /)")
    glob: Optional[str] = Field(default=None, description="Optional glob filtering file names, e.g. '*.py'")


class LsTool:
    name = "ls"
    description = "List files and directories in a directory. All paths start with /."
    args_model = LsArgs

    async def execute(self, ctx: ToolContext, *, args: LsArgs) -> str:
        infos = await ctx.backend.list(args.path)
        await ctx.emit(LsEvent(path=args.path, count=len(infos)))
        if not infos:
            return f"No files found in {args.path}"
        lines = []
        for info in infos:
            if info.is_dir:
                lines.append(f"{info.path} (directory)")
            else:
                lines.append(f"{info.path} ({info.size} bytes)" if info.size else info.path)
        return "\n".join(lines)


class ReadFileTool:
    name = "read_file"
    description = "Read a file with line numbers. Use offset and limit to page through long files."
    args_model = ReadFileArgs

    async def execute(self, ctx: ToolContext, *, args: ReadFileArgs) -> str:
        content = await ctx.backend.read(args.file_path, args.offset, args.limit)
        await ctx.emit(FileReadEvent(path=args.file_path, lines=len(content.split("\n"))))
        return content


class WriteFileTool:
    name = "write_file"
    description = "Create a new file. Fails if the file already exists; use edit_file to change existing files."
    args_model = WriteFileArgs

    async def execute(self, ctx: ToolContext, *, args: WriteFileArgs) -> str:
        await ctx.emit(FileWriteStartEvent(path=args.file_path, content=args.content))
        result = await ctx.backend.write(args.file_path, args.content)
        if result.error:
            return result.error
        await ctx.emit(FileWrittenEvent(path=args.file_path, content=args.content))
        return f"Successfully wrote to '{args.file_path}'"


class EditFileTool:
    name = "edit_file"
    description = (
        "Replace an exact string in a file. The string must be unique unless replace_all is true."
    )
    args_model = EditFileArgs

    async def execute(self, ctx: ToolContext, *, args: EditFileArgs) -> str:
        result = await ctx.backend.edit(args.file_path, args.old_string, args.new_string, args.replace_all)
        if result.error:
            return result.error
        occurrences = result.occurrences or 0
        await ctx.emit(FileEditedEvent(path=args.file_path, occurrences=occurrences))
        return f"Successfully replaced {occurrences} occurrence(s) in '{args.file_path}'"


class GlobTool:
    name = "glob"
    description = "Find files matching a glob pattern, e.g. '**/*.py'."
    args_model = GlobArgs

    async def execute(self, ctx: ToolContext, *, args: GlobArgs) -> str:
        infos = await ctx.backend.glob(args.pattern, args.path)
        await ctx.emit(GlobEvent(pattern=args.pattern, count=len(infos)))
        if not infos:
            return f"No files found matching pattern '{args.pattern}'"
        return "\n".join(info.path for info in infos)


def format_grep_matches(matches: List[GrepMatch]) -> str:
    lines: List[str] = []
    current: Optional[str] = None
    for m in matches:
        if m.path != current:
            current = m.path
            lines.append(f"{current}:")
        lines.append(f"  {m.line}: {m.text}")
    return "\n".join(lines)


class GrepTool:
    name = "grep"
    description = "Search file contents with a regular expression. Returns matching lines grouped by file."
    args_model = GrepArgs

    async def execute(self, ctx: ToolContext, *, args: GrepArgs) -> str:
        result = await ctx.backend.grep(args.pattern, args.path, args.glob)
        if isinstance(result, str):
            await ctx.emit(GrepEvent(pattern=args.pattern, count=0))
            return result
        await ctx.emit(GrepEvent(pattern=args.pattern, count=len(result)))
        if not result:
            return f"No matches found for pattern '{args.pattern}'"
        return format_grep_matches(result)


def filesystem_tools() -> List[Tool]:
    return [LsTool(), ReadFileTool(), WriteFileTool(), EditFileTool(), GlobTool(), GrepTool()]
