"""
Failure report bundle for build errors.

When stories fail, writes a structured JSON report with:
- Event id/name
- The chapter scenario that failed (when known)
- Error message + stack trace
- Paths to the asset cache and output folder
"""

from __future__ import annotations

import json
import traceback
from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

REPORT_FILENAME = "build_failure_report.json"


@dataclass
class FailedStory:
    """Detail about a failed story."""
    event_id: str
    event_name: str
    error_message: str
    error_type: str = ""
    scenario_id: str = ""
    stack_trace: str = ""


@dataclass
class BuildFailureReport:
    """Complete failure report for a build run."""
    timestamp: str = ""
    region: int = 1
    total_stories: int = 0
    built_ok: int = 0
    failed_count: int = 0
    failed_stories: list[FailedStory] = field(default_factory=list)
    assets_dir: str = ""
    output_dir: str = ""

    def __post_init__(self):
        if not self.timestamp:
            self.timestamp = datetime.now(timezone.utc).isoformat()

    def add_failure(
        self,
        event_id: str,
        event_name: str,
        error: Exception,
        scenario_id: str = "",
    ) -> None:
        """Record a story failure."""
        stack_trace = ""
        if error.__traceback__ is not None:
            stack_trace = "".join(
                traceback.format_exception(type(error), error, error.__traceback__)
            )
        self.failed_stories.append(FailedStory(
            event_id=event_id,
            event_name=event_name,
            error_message=str(error),
            error_type=type(error).__name__,
            scenario_id=scenario_id,
            stack_trace=stack_trace,
        ))
        self.failed_count = len(self.failed_stories)

    def to_dict(self) -> dict:
        """Serialize to dictionary."""
        return asdict(self)

    def to_json(self) -> str:
        """Serialize to JSON string."""
        return json.dumps(self.to_dict(), indent=2, ensure_ascii=False)

    def save(self, path: Optional[Path] = None) -> Path:
        """
        Write report to disk.

        Args:
            path: Output path (default: build_failure_report.json in output_dir).

        Returns:
            Path to written report.
        """
        if path is None:
            path = Path(self.output_dir or ".") / REPORT_FILENAME

        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.to_json(), encoding="utf-8")
        return path

    @classmethod
    def from_dict(cls, data: dict) -> "BuildFailureReport":
        """Load from dictionary."""
        report = cls(
            timestamp=data.get("timestamp", ""),
            region=data.get("region", 1),
            total_stories=data.get("total_stories", 0),
            built_ok=data.get("built_ok", 0),
            failed_count=data.get("failed_count", 0),
            assets_dir=data.get("assets_dir", ""),
            output_dir=data.get("output_dir", ""),
        )
        for fs in data.get("failed_stories", []):
            report.failed_stories.append(FailedStory(
                event_id=fs["event_id"],
                event_name=fs["event_name"],
                error_message=fs["error_message"],
                error_type=fs.get("error_type", ""),
                scenario_id=fs.get("scenario_id", ""),
                stack_trace=fs.get("stack_trace", ""),
            ))
        return report

    @classmethod
    def load(cls, path: Path) -> "BuildFailureReport":
        """Load report from JSON file."""
        data = json.loads(Path(path).read_text(encoding="utf-8"))
        return cls.from_dict(data)
