"""Built-in capability definitions for file and code work.

Each call to :func:`get_builtin_capabilities` returns fresh handlers bound
to the given working directory. No module-level state is kept. Handlers
take explicit keyword parameters only, so hallucinated arguments never
reach the filesystem.
"""

from __future__ import annotations

import contextlib
import io
import logging
import os
import re
from pathlib import Path

from agentloop.toolkit.models import (
    CapabilityDefinition,
    CapabilityHints,
    ParamSpec,
    ParamType,
)

logger = logging.getLogger(__name__)

READ_ONLY = "read_only"
CODE_ANALYSIS = "code_analysis"
CODE_GENERATION = "code_generation"
DATA_ANALYSIS = "data_analysis"


def _resolve(working_dir: Path, filepath: str) -> Path:
    path = Path(filepath).expanduser()
    if not path.is_absolute():
        path = working_dir / path
    return path


def _iter_files(directory: Path, pattern: str | None) -> list[Path]:
    regex = re.compile(pattern) if pattern else None
    files = []
    for path in sorted(directory.rglob("*")):
        if not path.is_file():
            continue
        if regex is not None and not regex.search(path.name):
            continue
        files.append(path)
    return files


def _handle_read_file(working_dir: Path, filepath: str) -> str:
    path = _resolve(working_dir, filepath)
    if not path.is_file():
        raise FileNotFoundError(f"File not found: {path}")
    return path.read_text(encoding="utf-8", errors="replace")


def _handle_write_file(working_dir: Path, filepath: str, content: str) -> str:
    path = _resolve(working_dir, filepath)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return f"File written successfully: {path}"


def _handle_list_files(
    working_dir: Path, directory: str = ".", pattern: str | None = None
) -> list[str]:
    root = _resolve(working_dir, directory)
    if not root.is_dir():
        raise NotADirectoryError(f"Directory not found: {root}")
    return [p.relative_to(root).as_posix() for p in _iter_files(root, pattern)]


def _handle_search_files(
    working_dir: Path,
    pattern: str,
    directory: str = ".",
    file_pattern: str | None = None,
) -> str:
    root = _resolve(working_dir, directory)
    if not root.is_dir():
        raise NotADirectoryError(f"Directory not found: {root}")
    regex = re.compile(pattern)
    sections: list[str] = []
    for path in _iter_files(root, file_pattern):
        try:
            lines = path.read_text(encoding="utf-8").splitlines()
        except (OSError, UnicodeDecodeError):
            logger.debug("Skipping unreadable file %s", path)
            continue
        hits = [line for line in lines if regex.search(line)]
        if hits:
            rel = path.relative_to(root).as_posix()
            sections.append("\n".join([f"File: {rel}"] + [f"  {h}" for h in hits]))
    if not sections:
        return "No matches found"
    return "\n\n".join(sections)


def _handle_execute_code(working_dir: Path, code: str) -> str:
    namespace: dict[str, object] = {"__name__": "__agentloop__"}
    buffer = io.StringIO()
    previous = os.getcwd()
    try:
        os.chdir(working_dir)
        with contextlib.redirect_stdout(buffer):
            exec(compile(code, "<agentloop>", "exec"), namespace)
    finally:
        os.chdir(previous)
    output = buffer.getvalue().rstrip("\n")
    return output if output else "(no output)"


def get_builtin_capabilities(working_dir: str | os.PathLike = ".") -> list[CapabilityDefinition]:
    """Build the built-in capability definitions.

    Args:
        working_dir: Directory relative paths are resolved against.

    Returns:
        Definitions for read_file, write_file, execute_code, list_files and
        search_files.
    """
    root = Path(working_dir).resolve()
    return [
        CapabilityDefinition(
            name="read_file",
            description="Read the contents of a text file.",
            parameters={
                "filepath": ParamSpec(
                    ParamType.STRING, required=True,
                    description="Path to the file, relative to the working directory.",
                ),
            },
            handler=lambda filepath: _handle_read_file(root, filepath),
            hints=CapabilityHints(read_only=True, idempotent=True),
            groups=frozenset({READ_ONLY, CODE_ANALYSIS, CODE_GENERATION}),
        ),
        CapabilityDefinition(
            name="write_file",
            description="Write content to a file, creating parent directories as needed.",
            parameters={
                "filepath": ParamSpec(
                    ParamType.STRING, required=True,
                    description="Path to the file to write.",
                ),
                "content": ParamSpec(
                    ParamType.STRING, required=True,
                    description="Full content to write.",
                ),
            },
            handler=lambda filepath, content: _handle_write_file(root, filepath, content),
            risky=True,
            hints=CapabilityHints(read_only=False, idempotent=True),
            groups=frozenset({CODE_GENERATION}),
        ),
        CapabilityDefinition(
            name="execute_code",
            description="Execute Python code in a fresh namespace and return its printed output.",
            parameters={
                "code": ParamSpec(
                    ParamType.STRING, required=True,
                    description="Python source to execute.",
                ),
            },
            handler=lambda code: _handle_execute_code(root, code),
            risky=True,
            groups=frozenset({DATA_ANALYSIS}),
        ),
        CapabilityDefinition(
            name="list_files",
            description="List files in a directory, recursively.",
            parameters={
                "directory": ParamSpec(
                    ParamType.STRING, default=".",
                    description="Directory to list (default: working directory).",
                ),
                "pattern": ParamSpec(
                    ParamType.STRING,
                    description="Optional regular expression matched against file names.",
                ),
            },
            handler=lambda directory=".", pattern=None: _handle_list_files(root, directory, pattern),
            hints=CapabilityHints(read_only=True, idempotent=True),
            groups=frozenset({READ_ONLY, CODE_ANALYSIS, CODE_GENERATION}),
        ),
        CapabilityDefinition(
            name="search_files",
            description="Search file contents for a regular expression.",
            parameters={
                "pattern": ParamSpec(
                    ParamType.STRING, required=True,
                    description="Regular expression to search for.",
                ),
                "directory": ParamSpec(
                    ParamType.STRING, default=".",
                    description="Directory to search (default: working directory).",
                ),
                "file_pattern": ParamSpec(
                    ParamType.STRING,
                    description="Optional regular expression limiting which files are searched.",
                ),
            },
            handler=lambda pattern, directory=".", file_pattern=None: _handle_search_files(
                root, pattern, directory, file_pattern
            ),
            hints=CapabilityHints(read_only=True, idempotent=True),
            groups=frozenset({READ_ONLY, CODE_ANALYSIS}),
        ),
    ]
