"""System prompt sections assembled by the engine."""

from typing import Iterable, Optional

BASE_PROMPT = "You are a capable agent. Use the available tools to complete the user's objective."

TODO_PROMPT = """## write_todos

Use `write_todos` to plan multi-step work. Keep todos up to date: mark an item
in_progress when you start it and completed as soon as it is done. Prefer
having a single item in_progress at a time."""

FILESYSTEM_PROMPT = """## Files

You have a filesystem. Every path starts with `/`.
- ls: list a directory
- read_file: read a file (line numbered; page with offset/limit)
- write_file: create a new file (never overwrites)
- edit_file: replace an exact string in an existing file
- glob: find files by pattern, e.g. `**/*.py`
- grep: search file contents with a regular expression

Large tool results may be saved to a file; read that file to see them."""

TASK_PROMPT = """## task

Use `task` to delegate a self-contained, multi-step job to a subagent. The
subagent starts with an empty conversation, shares your files, and returns a
single final report. Give it complete instructions and say what to return."""

DEFAULT_SUBAGENT_PROMPT = BASE_PROMPT

GENERAL_PURPOSE_DESCRIPTION = (
    "General-purpose agent for researching questions, searching files and carrying out "
    "multi-step tasks. It has the same tools as the main agent."
)

SUMMARY_REQUEST_PROMPT = (
    "Summarize the conversation below for your own later use. Keep decisions, facts, file paths, "
    "open tasks and the current goal. Be concise."
)


def build_system_prompt(custom: Optional[str], *, with_task: bool) -> str:
    sections = [custom] if custom else []
    sections.extend([BASE_PROMPT, TODO_PROMPT, FILESYSTEM_PROMPT])
    if with_task:
        sections.append(TASK_PROMPT)
    return "\n\n".join(sections)


def task_tool_description(subagents: Iterable[str]) -> str:
    listing = "\n".join(subagents)
    return (
        "Launch a subagent for an isolated, multi-step task. It returns one final message.\n\n"
        f"Available subagent types:\n{listing}\n\n"
        "Pass the subagent_type and a detailed description of the work and expected output."
    )
