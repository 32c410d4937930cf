"""
Schema ingestion through `llvm-tblgen --dump-json`.

The table parser itself is an external tool; this module only assembles its
command line, runs it, and turns its output (or its diagnostics) into a
`RecordKeeper` or a `SchemaIngestionError`.
"""

from __future__ import annotations

import json
import logging
import re
import shutil
import subprocess
from collections.abc import Sequence
from functools import lru_cache
from pathlib import Path
from typing import Any

from . import exceptions as _e
from .records import RecordKeeper

logger = logging.getLogger(__name__)

DEFAULT_TBLGEN = "llvm-tblgen"

_DIAGNOSTIC_RE = re.compile(
    r"^(?P<file>[^:\n]+):(?P<line>\d+):(?P<column>\d+): error: (?P<message>.*)$",
    re.MULTILINE,
)


@lru_cache
def find_executable(name: str) -> str | None:
    """Tries to find an executable in the PATH."""
    return shutil.which(name)


def include_source(schema_files: Sequence[str]) -> str:
    """Builds the root source that includes every schema file in order."""
    return "".join(f'include "{path}"\n' for path in schema_files)


def tblgen_command(
    executable: str, include_directories: Sequence[str]
) -> list[str]:
    args = [executable, "--dump-json"]
    for directory in include_directories:
        args.extend(["-I", str(directory)])
    # `-` reads the root source from stdin.
    args.append("-")
    return args


def parse_diagnostic(stderr: str) -> _e.SchemaIngestionError:
    """Turns the first `file:line:col: error:` diagnostic into an error."""
    match = _DIAGNOSTIC_RE.search(stderr)
    if match is None:
        message = stderr.strip() or "llvm-tblgen failed without diagnostics"
        return _e.SchemaIngestionError(message)
    location = _e.SourceLocation(
        file=match["file"], line=int(match["line"]), column=int(match["column"])
    )
    return _e.SchemaIngestionError(match["message"].strip(), location)


def run_tblgen(
    schema_files: Sequence[str],
    include_directories: Sequence[str],
    tblgen: str | None = None,
) -> dict[str, Any]:
    """Runs the table parser over `schema_files` and returns the JSON dump."""
    name = tblgen or DEFAULT_TBLGEN
    executable = find_executable(name)
    if executable is None:
        raise _e.SchemaIngestionError(f"table parser executable '{name}' not found")

    args = tblgen_command(executable, include_directories)
    logger.debug("running %s", " ".join(args))
    process = subprocess.run(
        args,
        input=include_source(schema_files),
        capture_output=True,
        text=True,
    )
    if process.returncode != 0:
        raise parse_diagnostic(process.stderr)
    return _decode(process.stdout, "llvm-tblgen output")


def _decode(text: str, origin: str) -> dict[str, Any]:
    try:
        dump = json.loads(text)
    except json.JSONDecodeError as e:
        raise _e.SchemaIngestionError(f"invalid record dump in {origin}: {e}") from e
    if not isinstance(dump, dict):
        raise _e.SchemaIngestionError(f"record dump in {origin} is not an object")
    return dump


def merge_dumps(dumps: Sequence[dict[str, Any]]) -> dict[str, Any]:
    """Merges record dumps; later dumps win on name clashes."""
    merged: dict[str, Any] = {}
    instances: dict[str, list[str]] = {}
    for dump in dumps:
        for class_name, names in dump.get("!instanceof", {}).items():
            known = instances.setdefault(class_name, [])
            known.extend(name for name in names if name not in known)
        merged.update(dump)
    merged["!instanceof"] = instances
    return merged


def load_records(
    schema_files: Sequence[str],
    include_directories: Sequence[str] = (),
    tblgen: str | None = None,
) -> RecordKeeper:
    """
    Parses the schema into a record keeper.

    Files ending in `.json` are taken to be record dumps already and are read
    directly; all other files are handed to the table parser together.
    """
    if not schema_files:
        raise _e.SchemaIngestionError("no schema files given")

    dumps: list[dict[str, Any]] = []
    sources = [path for path in schema_files if not str(path).endswith(".json")]
    for path in schema_files:
        if str(path).endswith(".json"):
            try:
                text = Path(path).read_text()
            except OSError as e:
                raise _e.SchemaIngestionError(f"cannot read '{path}': {e}") from e
            dumps.append(_decode(text, str(path)))
    if sources:
        dumps.append(run_tblgen(sources, include_directories, tblgen))

    keeper = RecordKeeper(merge_dumps(dumps))
    logger.debug("loaded %d records", len(keeper))
    return keeper
