"""
Builder protocols — lightweight interface for the pandoc converter.

This allows the build pipeline to be tested without pandoc installed.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Protocol, runtime_checkable


@dataclass
class RunResult:
    """Result of running an external command."""
    returncode: int
    stdout: str = ""
    stderr: str = ""


@runtime_checkable
class PandocRunner(Protocol):
    """Interface for running pandoc commands."""

    def run(self, args: list[str], input_text: Optional[str] = None) -> RunResult: ...
