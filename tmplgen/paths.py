"""
Path spec resolution for template arguments.

Each positional argument is either ``input.tmpl`` (output derived by
dropping the extension) or ``input=output`` (both sides taken verbatim).
"""

import os
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from .exceptions import UsageError

TEMPLATE_EXT = ".tmpl"


@dataclass(frozen=True)
class SourceKind:
    """A family of compiler source files that get a marker and a formatter pass."""

    name: str
    extensions: Tuple[str, ...]
    comment_prefix: str
    external_command: Tuple[str, ...]

    def marker(self, template_path: str) -> str:
        """Return the generated-file marker line for ``template_path``."""
        return f"{self.comment_prefix} Code generated by {template_path}. DO NOT EDIT.\n"


GO = SourceKind(
    name="go",
    extensions=(".go",),
    comment_prefix="//",
    external_command=("goimports",),
)

PYTHON = SourceKind(
    name="python",
    extensions=(".py",),
    comment_prefix="#",
    external_command=("ruff", "format", "-"),
)

SOURCE_KINDS: Dict[str, SourceKind] = {
    ext: kind for kind in (GO, PYTHON) for ext in kind.extensions
}


def source_kind_for(path: str) -> Optional[SourceKind]:
    """Classify ``path`` by its own extension; ``None`` for generic files."""
    return SOURCE_KINDS.get(os.path.splitext(path)[1])


def is_source_file(path: str) -> bool:
    return source_kind_for(path) is not None


@dataclass(frozen=True)
class PathSpec:
    """Resolved input template / output file pair."""

    input_path: str
    output_path: str

    def __str__(self) -> str:
        return f"{self.input_path} → {self.output_path}"

    @property
    def source_kind(self) -> Optional[SourceKind]:
        return source_kind_for(self.output_path)

    @property
    def is_source_file(self) -> bool:
        return self.source_kind is not None


def parse_path(raw: str, ext: str = TEMPLATE_EXT) -> PathSpec:
    """
    Resolve a single ``input[=output]`` argument.

    Args:
        raw: Command-line path argument
        ext: Reserved template extension

    Returns:
        PathSpec for the argument

    Raises:
        UsageError: If there is no ``=`` and ``raw`` does not end in ``ext``
    """
    p = raw.find("=")
    if p == -1:
        if not raw.endswith(ext):
            raise UsageError(f"template file '{raw}' must have {ext} extension")
        return PathSpec(input_path=raw, output_path=raw[: -len(ext)])

    return PathSpec(input_path=raw[:p], output_path=raw[p + 1 :])


def parse_paths(args, ext: str = TEMPLATE_EXT) -> list[PathSpec]:
    """Resolve every path argument, keeping argument order."""
    if not args:
        raise UsageError(f"no {ext} files specified")
    return [parse_path(arg, ext) for arg in args]
