"""
Core data models for Storybooker.

These are the values that flow from the Bestdori mirror into the renderer:
- Snippet: One scripted action, pointing into talk or effect data
- DialogueLine: A spoken line with its speaker
- EffectRecord: A special effect (only title cards matter for prose)
- Scenario: The script of one chapter
- Event / StoryChapter: Catalog metadata for an event and its chapters
- BuildConfig: Run-level settings
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import IntEnum
from pathlib import Path
from typing import Any, Optional
import json


# Region index -> asset server path segment
SERVER_CODES = {0: "jp", 1: "en", 2: "tw", 3: "cn", 4: "kr"}


class MalformedScenario(ValueError):
    """Scenario or catalog data is missing a field or references out of range."""

    def __init__(self, detail: str, scenario_id: str = ""):
        self.detail = detail
        self.scenario_id = scenario_id
        where = f"scenario {scenario_id!r}: " if scenario_id else ""
        super().__init__(f"{where}{detail}")


class ActionType(IntEnum):
    """Snippet action kinds that produce prose."""
    DIALOGUE = 1
    SPECIAL_EFFECT = 6


class EffectType(IntEnum):
    """Special effect kinds that produce prose."""
    TITLE = 8


@dataclass(frozen=True)
class Snippet:
    action_type: int
    reference_index: int

    @classmethod
    def from_dict(cls, data: dict, scenario_id: str = "") -> "Snippet":
        try:
            return cls(
                action_type=int(data["actionType"]),
                reference_index=int(data["referenceIndex"]),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise MalformedScenario(f"bad snippet {data!r}: {e}", scenario_id) from e


@dataclass(frozen=True)
class DialogueLine:
    speaker_name: str
    body: str

    @classmethod
    def from_dict(cls, data: dict, scenario_id: str = "") -> "DialogueLine":
        try:
            speaker_name, body = data["windowDisplayName"], data["body"]
        except (KeyError, TypeError) as e:
            raise MalformedScenario(f"bad talk data {data!r}: {e}", scenario_id) from e
        if not isinstance(speaker_name, str) or not isinstance(body, str):
            raise MalformedScenario(f"bad talk data {data!r}: text fields must be strings", scenario_id)
        return cls(speaker_name=speaker_name, body=body)


@dataclass(frozen=True)
class EffectRecord:
    effect_type: int
    string_val: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict, scenario_id: str = "") -> "EffectRecord":
        try:
            effect_type, string_val = int(data["effectType"]), data.get("stringVal")
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise MalformedScenario(f"bad special effect {data!r}: {e}", scenario_id) from e
        if string_val is not None and not isinstance(string_val, str):
            raise MalformedScenario(f"bad special effect {data!r}: stringVal must be a string", scenario_id)
        return cls(effect_type=effect_type, string_val=string_val)


@dataclass
class Scenario:
    """
    The script of one chapter.

    Talk and effect records are kept as raw dicts and decoded when a snippet
    dereferences them, so an unused malformed record never fails a chapter.

    Attributes:
        snippets: Actions in playback order
        talk_data: Raw talk records, indexed by Snippet.reference_index
        special_effect_data: Raw effect records, indexed by Snippet.reference_index
        scenario_id: Identity used in error messages
    """
    snippets: list[Snippet] = field(default_factory=list)
    talk_data: list[dict] = field(default_factory=list)
    special_effect_data: list[dict] = field(default_factory=list)
    scenario_id: str = ""

    def dialogue(self, index: int) -> DialogueLine:
        return DialogueLine.from_dict(self._lookup(self.talk_data, "talkData", index), self.scenario_id)

    def effect(self, index: int) -> EffectRecord:
        return EffectRecord.from_dict(
            self._lookup(self.special_effect_data, "specialEffectData", index), self.scenario_id
        )

    def _lookup(self, records: list[dict], name: str, index: int) -> dict:
        if not 0 <= index < len(records):
            raise MalformedScenario(
                f"{name}[{index}] out of range (length {len(records)})", self.scenario_id
            )
        return records[index]

    @classmethod
    def from_dict(cls, data: Any, scenario_id: str = "") -> "Scenario":
        """
        Build a Scenario from asset JSON.

        Accepts either the bare scenario body or the asset wrapper
        ``{"Base": {...}}`` served by the mirror.
        """
        if isinstance(data, dict) and isinstance(data.get("Base"), dict):
            data = data["Base"]
        if not isinstance(data, dict):
            raise MalformedScenario(f"expected an object, got {type(data).__name__}", scenario_id)
        if not isinstance(data.get("snippets"), list):
            raise MalformedScenario("missing 'snippets'", scenario_id)

        return cls(
            snippets=[Snippet.from_dict(s, scenario_id) for s in data["snippets"]],
            talk_data=list(data.get("talkData") or []),
            special_effect_data=list(data.get("specialEffectData") or []),
            scenario_id=scenario_id,
        )


def _localized(values: list, region: int, what: str, owner: str) -> str:
    value = values[region] if 0 <= region < len(values) else None
    if value is None:
        raise MalformedScenario(f"{owner} has no {what} for region {region}")
    return value


def parse_timestamp_ms(value: Any) -> datetime:
    """Convert an epoch-milliseconds value (string or number) to an aware UTC datetime."""
    return datetime.fromtimestamp(int(value) / 1000, tz=timezone.utc)


@dataclass
class StoryChapter:
    """
    One chapter entry from the event story catalog.

    Attributes:
        scenario_id: Asset identifier of the chapter script
        captions: Localized captions (e.g. "Chapter 1"), indexed by region
        titles: Localized chapter titles, indexed by region
    """
    scenario_id: str
    captions: list[Optional[str]] = field(default_factory=list)
    titles: list[Optional[str]] = field(default_factory=list)

    def caption(self, region: int) -> str:
        return _localized(self.captions, region, "caption", f"chapter {self.scenario_id!r}")

    def title(self, region: int) -> str:
        return _localized(self.titles, region, "title", f"chapter {self.scenario_id!r}")

    @classmethod
    def from_dict(cls, data: dict) -> "StoryChapter":
        try:
            return cls(
                scenario_id=str(data["scenarioId"]),
                captions=list(data.get("caption") or []),
                titles=list(data.get("title") or []),
            )
        except (KeyError, TypeError) as e:
            raise MalformedScenario(f"bad story entry {data!r}: {e}") from e


@dataclass
class Event:
    """
    An event from the events catalog.

    Attributes:
        event_id: Catalog key (numeric string)
        names: Localized event names, indexed by region
        asset_bundle_name: Bundle name, used as the cache folder
        start_at: Localized start times in epoch milliseconds, None where unreleased
    """
    event_id: str
    names: list[Optional[str]] = field(default_factory=list)
    asset_bundle_name: str = ""
    start_at: list[Optional[Any]] = field(default_factory=list)

    def name(self, region: int) -> str:
        return _localized(self.names, region, "name", f"event {self.event_id}")

    def has_started(self, now: datetime, region: int) -> bool:
        """True when the event has a start time in this region and it is not in the future."""
        if not 0 <= region < len(self.start_at):
            return False
        start = self.start_at[region]
        if start is None:
            return False
        return now >= parse_timestamp_ms(start)

    @classmethod
    def from_dict(cls, event_id: str, data: dict) -> "Event":
        if not isinstance(data, dict):
            raise MalformedScenario(f"bad event entry {event_id!r}: expected an object, got {type(data).__name__}")
        return cls(
            event_id=str(event_id),
            names=list(data.get("eventName") or []),
            asset_bundle_name=data.get("assetBundleName") or f"event{event_id}",
            start_at=list(data.get("startAt") or []),
        )


@dataclass
class BuildConfig:
    """
    Run-level configuration.

    Attributes:
        region: Region index (0 jp, 1 en, 2 tw, 3 cn, 4 kr)
        output_dir: Root folder for generated books
        assets_dir: Root folder for cached scenario JSON
        excluded_event_ids: Events skipped because of upstream data problems
        pandoc_path: pandoc executable
        pandoc_extra_args: Extra arguments appended to every pandoc call
        keep_markdown: Also write the assembled markdown next to each book
        request_timeout_s: HTTP timeout per request
    """
    region: int = 1
    output_dir: str = "Stories"
    assets_dir: str = "assets"
    excluded_event_ids: list[str] = field(default_factory=list)
    pandoc_path: str = "pandoc"
    pandoc_extra_args: list[str] = field(default_factory=list)
    keep_markdown: bool = False
    request_timeout_s: float = 30.0

    @property
    def server_code(self) -> str:
        try:
            return SERVER_CODES[self.region]
        except KeyError:
            raise ValueError(f"Unknown region: {self.region!r}")

    def to_dict(self) -> dict:
        """Serialize to dictionary."""
        return {
            "region": self.region,
            "output_dir": self.output_dir,
            "assets_dir": self.assets_dir,
            "excluded_event_ids": list(self.excluded_event_ids),
            "pandoc_path": self.pandoc_path,
            "pandoc_extra_args": list(self.pandoc_extra_args),
            "keep_markdown": self.keep_markdown,
            "request_timeout_s": self.request_timeout_s,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "BuildConfig":
        """Deserialize from dictionary."""
        return cls(
            region=int(data.get("region", 1)),
            output_dir=data.get("output_dir", "Stories"),
            assets_dir=data.get("assets_dir", "assets"),
            excluded_event_ids=[str(e) for e in data.get("excluded_event_ids", [])],
            pandoc_path=data.get("pandoc_path", "pandoc"),
            pandoc_extra_args=list(data.get("pandoc_extra_args", [])),
            keep_markdown=bool(data.get("keep_markdown", False)),
            request_timeout_s=float(data.get("request_timeout_s", 30.0)),
        )


def load_config(path: str | Path) -> BuildConfig:
    """Load a BuildConfig from a JSON file."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")
    return BuildConfig.from_dict(json.loads(path.read_text(encoding="utf-8")))
