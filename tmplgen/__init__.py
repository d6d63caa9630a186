"""
tmplgen - build-time source generator.

Binds a relaxed JSON document (comments allowed) to Jinja2 templates and
writes the rendered files, formatting generated Go and Python sources.
"""

__version__ = "0.1.0"

from .exceptions import (
    ConfigError,
    DataError,
    FormatError,
    GenerationError,
    TemplateError,
    TmplGenError,
    UsageError,
)
from .jsonc import load_data, strip_comments
from .paths import PathSpec, parse_path, is_source_file
from .templates import BoundData, TemplateEngine, bind, DEFAULT_HELPERS
from .formatters import ExternalFormatter, NativeFormatter, select_formatter
from .generator import GenerationResult, run

__all__ = [
    "BoundData",
    "ConfigError",
    "DataError",
    "DEFAULT_HELPERS",
    "ExternalFormatter",
    "FormatError",
    "GenerationError",
    "GenerationResult",
    "NativeFormatter",
    "PathSpec",
    "TemplateEngine",
    "TemplateError",
    "TmplGenError",
    "UsageError",
    "bind",
    "is_source_file",
    "load_data",
    "parse_path",
    "run",
    "select_formatter",
    "strip_comments",
]
