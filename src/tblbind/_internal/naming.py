"""Identifier casing and docstring helpers used by model building and codegen."""

from __future__ import annotations

import builtins
import inspect
import keyword
import re

# Members of the generated wrapper and builder classes, and the factory
# parameter of constructor functions; schema names that collide get a
# trailing underscore.
RESERVED_NAMES = frozenset(
    {
        "as_operation",
        "build",
        "builder",
        "duplicate",
        "factory",
        "operation_name",
        "try_from",
    }
)

# Globals of a generated module: builtins and the names it imports.
MODULE_RESERVED_NAMES = frozenset(dir(builtins)) | {
    "Any",
    "ClassVar",
    "Sequence",
    "Union",
    "annotations",
    "_rt",
}


def to_snake_case(name: str) -> str:
    """Converts CamelCase to snake_case for field and op names."""
    name = re.sub("(.)([A-Z][a-z]+)", r"\1_\2", name)
    return re.sub("([a-z0-9])([A-Z])", r"\1_\2", name).lower()


def to_pascal_case(name: str) -> str:
    """Converts snake_case or dotted names to PascalCase, keeping inner capitals."""
    parts = re.split(r"[^0-9A-Za-z]+", name)
    return "".join(part[:1].upper() + part[1:] for part in parts if part)


def to_identifier(name: str, *, module_level: bool = False) -> str:
    """
    Makes `name` usable as a generated Python identifier.

    With `module_level`, builtins and the names a generated module imports
    are escaped too.
    """
    name = re.sub(r"\W", "_", name)
    if not name or name[0].isdigit():
        name = "_" + name
    if keyword.iskeyword(name) or name in RESERVED_NAMES:
        name += "_"
    elif module_level and name in MODULE_RESERVED_NAMES:
        name += "_"
    return name


def to_docstring(text: str) -> str:
    """Dedents schema documentation and makes it safe inside triple quotes."""
    text = inspect.cleandoc(text)
    return text.replace("\\", "\\\\").replace('"""', '\\"\\"\\"')
