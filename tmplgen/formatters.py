"""
Formatter strategies for generated source files.

One strategy is selected per run and applied to every source-kind output:
an in-process normalizer, or an external formatting/import-fixing tool fed
through stdin/stdout.
"""

import ast
import io
import re
import shutil
import subprocess
import tokenize
from abc import ABC, abstractmethod
from typing import Dict, Iterable, Mapping, Optional, Sequence, Set, Tuple

from .exceptions import FormatError, UsageError
from .logging_config import get_logger
from .paths import SOURCE_KINDS, SourceKind

logger = get_logger(__name__)


class Formatter(ABC):
    """Abstract base class for formatter strategies."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Return a short name for diagnostics (e.g., 'native')."""
        pass

    @abstractmethod
    def format(self, source: bytes, kind: SourceKind) -> bytes:
        """
        Canonicalize generated source.

        Args:
            source: Generated bytes, marker included
            kind: Source kind of the output file

        Returns:
            Formatted bytes

        Raises:
            FormatError: If the source is rejected
        """
        pass


_TRAILING_WS = " \t\r"

_GO_BRACKETS = {"(": ")", "[": "]", "{": "}"}
_GO_PACKAGE = re.compile(r"\s*package\s+[^\W\d]\w*")


def _python_verbatim_rows(code: str) -> Set[int]:
    """Return 0-based line numbers covered by tokens spanning several lines."""
    rows: Set[int] = set()
    try:
        for tok in tokenize.generate_tokens(io.StringIO(code).readline):
            start_row, end_row = tok.start[0], tok.end[0]
            if end_row > start_row:
                rows.update(range(start_row - 1, end_row))
    except (tokenize.TokenError, SyntaxError) as e:
        raise FormatError(f"cannot tokenize python source: {e}") from e
    return rows


def _scan_go(code: str) -> Tuple[Set[int], str]:
    """
    Check literal, comment and bracket structure of Go source.

    Returns:
        Line numbers (0-based) that start or end inside a raw string, and
        the source with comments blanked out

    Raises:
        FormatError: On unbalanced brackets or unterminated literals
    """
    verbatim: Set[int] = set()
    text = []
    stack = []
    state = None
    line = 0
    i = 0
    n = len(code)

    while i < n:
        c = code[i]

        if c == "\n":
            if state == "`":
                verbatim.update((line, line + 1))
            elif state in ('"', "'"):
                raise FormatError(f"line {line + 1}: newline in string")
            elif state == "//":
                state = None
            text.append(c)
            line += 1
            i += 1
            continue

        if state == "//":
            i += 1
            continue

        if state == "/*":
            if code.startswith("*/", i):
                state = None
                text.append(" ")
                i += 2
            else:
                i += 1
            continue

        text.append(c)

        if state in ('"', "'"):
            if c == "\\" and i + 1 < n and code[i + 1] != "\n":
                text.append(code[i + 1])
                i += 2
                continue
            if c == state:
                state = None
        elif state == "`":
            if c == "`":
                state = None
        elif code.startswith("//", i) or code.startswith("/*", i):
            text.pop()
            state = code[i : i + 2]
            i += 2
            continue
        elif c in "\"'`":
            state = c
        elif c in _GO_BRACKETS:
            stack.append((c, line))
        elif c in ")]}":
            if not stack or _GO_BRACKETS[stack.pop()[0]] != c:
                raise FormatError(f"line {line + 1}: unexpected {c}")

        i += 1

    if state not in (None, "//"):
        raise FormatError(f"line {line + 1}: unterminated literal or comment")
    if stack:
        opener, opened_at = stack[-1]
        raise FormatError(f"line {opened_at + 1}: unclosed {opener}")

    return verbatim, "".join(text)


class NativeFormatter(Formatter):
    """Deterministic in-process formatter, no external process involved.

    Trailing whitespace is stripped and blank runs collapsed, except on
    lines that start or end inside a multi-line string literal. Python
    output must parse to the same AST before and after; Go output must have
    a package clause and balanced brackets.
    """

    @property
    def name(self) -> str:
        return "native"

    def format(self, source: bytes, kind: SourceKind) -> bytes:
        try:
            code = source.decode("utf-8")
        except UnicodeDecodeError as e:
            raise FormatError(f"generated {kind.name} source is not UTF-8: {e}") from e

        if kind.name == "python":
            before = self._parse_python(code)
            formatted = self.format_code(code, _python_verbatim_rows(code))
            if ast.dump(self._parse_python(formatted)) != ast.dump(before):
                raise FormatError("whitespace normalization changed the program")
        elif kind.name == "go":
            verbatim, text = _scan_go(code)
            if not _GO_PACKAGE.match(text):
                raise FormatError("expected 'package' clause")
            formatted = self.format_code(code, verbatim)
        else:
            formatted = self.format_code(code)

        return formatted.encode("utf-8")

    @staticmethod
    def _parse_python(code: str) -> ast.AST:
        try:
            return ast.parse(code)
        except SyntaxError as e:
            raise FormatError(f"line {e.lineno}: {e.msg}") from e

    @staticmethod
    def format_code(code: str, verbatim: Iterable[int] = ()) -> str:
        """
        Strip trailing whitespace, collapse blank runs, end with one newline.

        Args:
            code: Source text, split on ``\\n`` only
            verbatim: 0-based line numbers copied unchanged

        Returns:
            Normalized source
        """
        verbatim = set(verbatim)
        formatted_lines = []
        blank = False

        for number, line in enumerate(code.split("\n")):
            if number in verbatim:
                blank = False
                formatted_lines.append(line)
                continue

            stripped = line.rstrip(_TRAILING_WS)
            if not stripped:
                if formatted_lines and not blank:
                    formatted_lines.append("")
                blank = True
            else:
                blank = False
                formatted_lines.append(stripped)

        while formatted_lines and not formatted_lines[-1]:
            formatted_lines.pop()

        return "\n".join(formatted_lines) + "\n"


class ExternalFormatter(Formatter):
    """Pipes generated source through an external tool per source kind."""

    def __init__(self, commands: Optional[Mapping[str, Sequence[str]]] = None):
        """
        Args:
            commands: Argv overrides keyed by source kind name
        """
        self.commands: Dict[str, Tuple[str, ...]] = {
            name: tuple(argv) for name, argv in (commands or {}).items()
        }

    @property
    def name(self) -> str:
        return "external"

    def command_for(self, kind: SourceKind) -> Tuple[str, ...]:
        return self.commands.get(kind.name, kind.external_command)

    def check_available(self, kinds: Iterable[SourceKind] = None) -> None:
        """
        Verify every needed executable can be found on PATH.

        Raises:
            UsageError: If a tool is missing
        """
        if kinds is None:
            kinds = set(SOURCE_KINDS.values())
        for kind in kinds:
            tool = self.command_for(kind)[0]
            if shutil.which(tool) is None:
                raise UsageError(f"failed to find {tool}: executable not found in PATH")
            logger.debug("Using %s for %s sources", tool, kind.name)

    def format(self, source: bytes, kind: SourceKind) -> bytes:
        cmd = list(self.command_for(kind))
        logger.debug("Running %s", " ".join(cmd))
        try:
            proc = subprocess.run(cmd, input=source, capture_output=True)
        except OSError as e:
            raise FormatError(f"error running {cmd[0]}: {e}") from e

        if proc.returncode != 0:
            raise FormatError(
                f"error running {cmd[0]}: {proc.stderr.decode('utf-8', 'replace')}"
            )
        return proc.stdout


def select_formatter(
    use_external: bool = False,
    commands: Optional[Mapping[str, Sequence[str]]] = None,
) -> Formatter:
    """Pick the formatter strategy for a whole run."""
    if use_external:
        return ExternalFormatter(commands)
    return NativeFormatter()
