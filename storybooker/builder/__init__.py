"""
Builder module for Storybooker.

Handles:
- Story assembly (title block + chapter headings + fragments)
- EPUB conversion via pandoc
- Batch building with per-story failure isolation
"""

from storybooker.builder.engine import build_events, build_event, BuildError, BuildSummary
from storybooker.builder.assembly import assemble_story
from storybooker.builder.converter import convert_to_epub, ConversionError, ConversionResult
from storybooker.builder.protocols import PandocRunner, RunResult
from storybooker.builder.failure_report import BuildFailureReport

__all__ = [
    "build_events",
    "build_event",
    "BuildError",
    "BuildSummary",
    "assemble_story",
    "convert_to_epub",
    "ConversionError",
    "ConversionResult",
    "PandocRunner",
    "RunResult",
    "BuildFailureReport",
]
