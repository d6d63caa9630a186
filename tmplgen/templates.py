"""
Template engine wrapper for code generation.

Binds Jinja2 templates to the loaded data document and the named
variables, with a fixed table of string helpers available both as
filters and as plain functions.
"""

import re
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Callable, Dict, Iterable, Mapping, Tuple

from jinja2 import Environment, StrictUndefined, Template, TemplateSyntaxError

from .exceptions import TemplateError, UsageError
from .logging_config import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class BoundData:
    """Context passed to every template: the document and the named variables.

    Templates refer to the document as ``In`` and to the variables as ``D``.
    """

    In: Any = None
    D: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))

    def context(self) -> Dict[str, Any]:
        return {"In": self.In, "D": self.D}


def bind(document: Any, variables: Mapping[str, str] | None = None) -> BoundData:
    """Wrap a parsed document and a variable mapping into a read-only BoundData."""
    return BoundData(In=document, D=MappingProxyType(dict(variables or {})))


def parse_variable(token: str) -> Tuple[str, str]:
    """
    Split a ``NAME=VALUE`` token on its first ``=``.

    Raises:
        UsageError: If the token has no ``=`` or an empty name
    """
    name, sep, value = token.partition("=")
    if not sep or not name:
        raise UsageError(f"expected NAME=VALUE, got {token}")
    return name, value


def parse_variables(tokens: Iterable[str] | None) -> Dict[str, str]:
    """Collect ``NAME=VALUE`` tokens into a mapping; later names win."""
    variables: Dict[str, str] = {}
    for token in tokens or ():
        name, value = parse_variable(token)
        variables[name] = value
    return variables


# Helper functions for code generation


def snake_case(value: str) -> str:
    """Convert string to snake_case."""
    # Insert underscore before uppercase letters
    s1 = re.sub("([a-z0-9])([A-Z])", r"\1_\2", str(value))
    # Replace spaces and hyphens with underscores
    s2 = re.sub(r"[-\s]+", "_", s1)
    return s2.lower()


def camel_case(value: str) -> str:
    """Convert string to camelCase."""
    parts = snake_case(value).split("_")
    return parts[0] + "".join(p.capitalize() for p in parts[1:])


def pascal_case(value: str) -> str:
    """Convert string to PascalCase."""
    return "".join(p.capitalize() for p in snake_case(value).split("_") if p)


DEFAULT_HELPERS: Mapping[str, Callable[[str], str]] = MappingProxyType(
    {
        "lower": lambda s: str(s).lower(),
        "upper": lambda s: str(s).upper(),
        "title": lambda s: str(s).title(),
        "snake_case": snake_case,
        "camel_case": camel_case,
        "pascal_case": pascal_case,
    }
)


class DocumentEnvironment(Environment):
    """Environment where ``obj.name`` on a mapping prefers the ``name`` key.

    ``In.items`` reads the document's ``items`` field instead of the dict
    method; methods stay reachable for keys the mapping does not have.
    """

    def getattr(self, obj: Any, attribute: str) -> Any:
        if isinstance(obj, Mapping):
            try:
                return obj[attribute]
            except (KeyError, TypeError):
                pass
        return super().getattr(obj, attribute)


class TemplateEngine:
    """Wrapper for Jinja2 environment used to render template files."""

    def __init__(self, helpers: Mapping[str, Callable[[str], str]] = DEFAULT_HELPERS):
        """
        Initialize template engine.

        Args:
            helpers: Named string transforms exposed to templates
        """
        self.helpers = MappingProxyType(dict(helpers))
        self._env = DocumentEnvironment(
            autoescape=False,
            undefined=StrictUndefined,
            keep_trailing_newline=True,
        )
        self._env.filters.update(self.helpers)
        self._env.globals.update(self.helpers)

    def compile(self, source: str, name: str = "gen") -> Template:
        """
        Parse template source.

        Args:
            source: Template content as string
            name: Template name used in diagnostics

        Returns:
            Compiled template

        Raises:
            TemplateError: On syntax errors
        """
        try:
            template = self._env.from_string(source)
        except TemplateSyntaxError as e:
            raise TemplateError(
                f"error processing template '{name}': line {e.lineno}: {e.message}"
            ) from e
        logger.debug("Compiled template %s", name)
        return template

    def render(self, template: Template, data: BoundData, name: str = "gen") -> str:
        """
        Execute a compiled template against bound data.

        Raises:
            TemplateError: On any execution failure, including references
                to missing fields
        """
        try:
            return template.render(data.context())
        except Exception as e:
            raise TemplateError(f"error executing template '{name}': {e}") from e

    def render_string(self, source: str, data: BoundData, name: str = "gen") -> str:
        """Compile and render template source in one step."""
        return self.render(self.compile(source, name), data, name)
