"""
Exception hierarchy for tmplgen.

Every failure in the generation run is fatal; the CLI catches
``TmplGenError`` once, prints a single diagnostic line and exits non-zero.
"""


class TmplGenError(Exception):
    """Base exception for all tmplgen errors."""

    pass


class UsageError(TmplGenError):
    """Exception raised for invalid command-line usage."""

    pass


class ConfigError(UsageError):
    """Exception raised for configuration-related errors."""

    pass


class DataError(TmplGenError):
    """Exception raised when the data document cannot be loaded or parsed."""

    pass


class TemplateError(TmplGenError):
    """Exception raised for template read, parse or execution errors."""

    pass


class FormatError(TmplGenError):
    """Exception raised when generated source fails formatting."""

    pass


class GenerationError(TmplGenError):
    """Exception raised when a generated file cannot be written."""

    pass
