"""
Storybooker - Event story e-books from Bestdori scenario data

Downloads event story scenarios from the Bestdori mirror, renders each
chapter's script to markdown prose, and converts every event story to
an EPUB with pandoc.

Example:
    from storybooker import Scenario, render_scenario

    scenario = Scenario.from_dict(asset_json, scenario_id="event1-01")
    markdown = render_scenario(scenario)
"""

__version__ = "0.1.0"

from storybooker.models import (
    Scenario,
    Snippet,
    DialogueLine,
    EffectRecord,
    Event,
    StoryChapter,
    BuildConfig,
    MalformedScenario,
)
from storybooker.markdown import render_scenario, escape_markdown

__all__ = [
    "Scenario",
    "Snippet",
    "DialogueLine",
    "EffectRecord",
    "Event",
    "StoryChapter",
    "BuildConfig",
    "MalformedScenario",
    "render_scenario",
    "escape_markdown",
]
