"""
Pandoc runner — wraps subprocess calls for mockability and logging.
"""

from __future__ import annotations

import logging
import subprocess
from typing import Optional

from storybooker.builder.protocols import RunResult

logger = logging.getLogger("storybooker.pandoc")


class RealPandocRunner:
    """Runs pandoc via subprocess. Default in production."""

    def __init__(self, pandoc_path: str = "pandoc") -> None:
        self.pandoc_path = pandoc_path

    def run(self, args: list[str], input_text: Optional[str] = None) -> RunResult:
        logger.debug(f"{' '.join(args)}")
        try:
            proc = subprocess.run(
                args,
                input=input_text,
                capture_output=True,
                text=True,
                encoding="utf-8",
            )
            return RunResult(
                returncode=proc.returncode,
                stdout=proc.stdout,
                stderr=proc.stderr,
            )
        except FileNotFoundError:
            return RunResult(
                returncode=-1,
                stderr=f"{args[0] if args else 'pandoc'} not found on PATH",
            )

    def available(self) -> bool:
        result = self.run([self.pandoc_path, "--version"])
        return result.returncode == 0
