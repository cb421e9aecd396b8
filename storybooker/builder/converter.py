"""
EPUB conversion for Storybooker.

Hands an assembled markdown document to pandoc, which owns the
EPUB container format.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence

from storybooker.builder.protocols import PandocRunner

logger = logging.getLogger("storybooker.builder")


@dataclass
class ConversionResult:
    """Result of a markdown -> EPUB conversion."""
    output_path: Path
    title: str
    warnings: str = ""


class ConversionError(RuntimeError):
    """pandoc failed to produce the book."""

    def __init__(self, message: str, stderr: str = ""):
        super().__init__(message)
        self.stderr = stderr


def pandoc_args(
    output_path: Path,
    pandoc_path: str = "pandoc",
    extra_args: Sequence[str] = (),
) -> list[str]:
    """Command line for converting markdown on stdin to EPUB."""
    return [
        pandoc_path,
        "-f", "markdown",
        "-t", "epub",
        "-o", str(output_path),
        *extra_args,
    ]


def convert_to_epub(
    markdown: str,
    output_path: Path,
    title: str,
    runner: Optional[PandocRunner] = None,
    pandoc_path: str = "pandoc",
    extra_args: Sequence[str] = (),
) -> ConversionResult:
    """
    Convert a markdown document to an EPUB file.

    Args:
        markdown: Complete story markdown (with title block)
        output_path: Destination .epub path (parent dirs are created)
        title: Book title, used for logging and the result
        runner: Injected PandocRunner (defaults to subprocess)
        pandoc_path: pandoc executable
        extra_args: Extra pandoc arguments

    Returns:
        ConversionResult

    Raises:
        ConversionError: pandoc is missing or exited non-zero
    """
    if runner is None:
        from storybooker.builder.pandoc_runner import RealPandocRunner
        runner = RealPandocRunner(pandoc_path)

    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    result = runner.run(pandoc_args(output_path, pandoc_path, extra_args), markdown)

    if result.returncode != 0:
        stderr_tail = "\n".join(result.stderr.strip().splitlines()[-20:])
        raise ConversionError(
            f"pandoc failed for {title!r} (exit {result.returncode}): {stderr_tail}",
            stderr=stderr_tail,
        )

    if result.stderr.strip():
        logger.warning(f"CONVERT_WARNINGS: title={title!r}\n{result.stderr.strip()}")

    logger.info(f"CONVERT_OK: title={title!r} output={output_path}")
    return ConversionResult(output_path=output_path, title=title, warnings=result.stderr.strip())
