"""
Generation pipeline.

Renders each template against the bound data, adds the generated-file
marker and runs the formatter for source-kind outputs, and writes the
result with the template's permission bits. Specs are processed one at a
time in order and the first failure aborts the run.
"""

import os
import stat
from pathlib import Path
from typing import List, Optional, Sequence

from .exceptions import FormatError, GenerationError, TemplateError
from .formatters import Formatter
from .logging_config import get_logger
from .paths import PathSpec
from .templates import BoundData, TemplateEngine

logger = get_logger(__name__)


class GenerationResult:
    """Container for the outcome of one path spec."""

    def __init__(self, spec: PathSpec, size: int, formatted: bool = False):
        """
        Initialize generation result.

        Args:
            spec: Path spec that was processed
            size: Number of bytes written to the output
            formatted: Whether the formatter strategy was applied
        """
        self.spec = spec
        self.size = size
        self.formatted = formatted

    def __repr__(self) -> str:
        return (
            f"GenerationResult({self.spec!s}, size={self.size}, "
            f"formatted={self.formatted})"
        )


def read_template(path: str) -> str:
    """
    Read template source as UTF-8 text.

    Raises:
        TemplateError: If the file cannot be read or decoded
    """
    try:
        return Path(path).read_bytes().decode("utf-8")
    except OSError as e:
        raise TemplateError(f"error reading template '{path}': {e}") from e
    except UnicodeDecodeError as e:
        raise TemplateError(f"template '{path}' is not valid UTF-8: {e}") from e


def file_mode(path: str) -> int:
    """Return the permission bits of ``path``."""
    try:
        return stat.S_IMODE(os.stat(path).st_mode)
    except OSError as e:
        raise GenerationError(f"cannot stat '{path}': {e}") from e


def write_output(path: str, content: bytes, mode: int) -> None:
    """
    Write ``content`` to ``path``, replacing any existing file, then apply ``mode``.

    Raises:
        GenerationError: If the file cannot be written
    """
    output = Path(path)
    try:
        # previous output may be read-only
        if output.is_file() or output.is_symlink():
            output.unlink()
        output.write_bytes(content)
        os.chmod(output, mode)
    except OSError as e:
        raise GenerationError(f"error writing '{path}': {e}") from e


def render_spec(
    spec: PathSpec,
    data: BoundData,
    formatter: Formatter,
    engine: TemplateEngine,
) -> bytes:
    """Produce the final bytes for one spec without touching the output path."""
    template = engine.compile(read_template(spec.input_path), spec.input_path)

    kind = spec.source_kind
    parts = []
    if kind is not None:
        parts.append(kind.marker(spec.input_path))
        parts.append("\n")
    parts.append(engine.render(template, data, spec.input_path))
    generated = "".join(parts).encode("utf-8")

    if kind is not None:
        try:
            generated = formatter.format(generated, kind)
        except FormatError as e:
            raise FormatError(f"error formatting '{spec.input_path}': {e}") from e
        logger.debug("Formatted %s with %s formatter", spec.output_path, formatter.name)

    return generated


def process_spec(
    spec: PathSpec,
    data: BoundData,
    formatter: Formatter,
    engine: TemplateEngine,
) -> GenerationResult:
    """Render one spec and write its output."""
    generated = render_spec(spec, data, formatter, engine)
    write_output(spec.output_path, generated, file_mode(spec.input_path))
    logger.info("Generated %s", spec)
    return GenerationResult(spec, len(generated), formatted=spec.is_source_file)


def run(
    data: BoundData,
    specs: Sequence[PathSpec],
    formatter: Formatter,
    engine: Optional[TemplateEngine] = None,
) -> List[GenerationResult]:
    """
    Generate every spec in order.

    Args:
        data: Document and variables shared by all templates
        specs: Resolved path specs, processed sequentially
        formatter: Strategy applied to source-kind outputs
        engine: Template engine; a default one is created if omitted

    Returns:
        One result per spec

    Raises:
        TmplGenError: On the first failing spec. Outputs written for
            earlier specs are left in place.
    """
    if engine is None:
        engine = TemplateEngine()

    results = []
    for spec in specs:
        results.append(process_spec(spec, data, formatter, engine))
    return results
