"""
Scenario -> markdown renderer.

Turns a chapter's scripted snippets into linear prose: one paragraph per
dialogue line and a bold marker per title card, with dividers between
scenes. Also holds the heading and filename helpers used when assembling a
whole event story.
"""

import logging
import re

from storybooker.models import (
    ActionType,
    EffectType,
    MalformedScenario,
    Scenario,
)

logger = logging.getLogger("storybooker.renderer")

DIVIDER = "---\n\n"
TITLE_CLOSE = "--**\n\n"

_MARKDOWN_CHARS_RE = re.compile(r"([\\*_<>()#])")
_WINDOWS_CHARS_RE = re.compile(r'[<>:"/\\|?*]')
_LINE_BREAK_RE = re.compile(r"[\n\r]")


def escape_markdown(text: str) -> str:
    """Backslash-escape characters that markdown would treat as syntax."""
    return _MARKDOWN_CHARS_RE.sub(r"\\\1", text)


def render_scenario(scenario: Scenario) -> str:
    """
    Render one chapter's scenario to markdown.

    Args:
        scenario: Parsed chapter script

    Returns:
        Markdown fragment ("" for a scenario without snippets)

    Raises:
        MalformedScenario: A snippet references a missing record
    """
    out = ""

    for position, snippet in enumerate(scenario.snippets):
        try:
            out += _render_snippet(scenario, snippet.action_type, snippet.reference_index, out)
        except MalformedScenario as e:
            raise MalformedScenario(f"snippet {position}: {e.detail}", scenario.scenario_id) from e

    logger.debug(
        f"RENDER_SCENARIO: scenario={scenario.scenario_id!r} "
        f"snippets={len(scenario.snippets)} chars={len(out)}"
    )
    return out


def _render_snippet(scenario: Scenario, action_type: int, index: int, out: str) -> str:
    if action_type == ActionType.DIALOGUE:
        line = scenario.dialogue(index)
        body = _LINE_BREAK_RE.sub(" ", line.body)
        return f"**{escape_markdown(line.speaker_name)}:** {escape_markdown(body)}\n\n"

    if action_type == ActionType.SPECIAL_EFFECT:
        effect = scenario.effect(index)
        if effect.effect_type != EffectType.TITLE:
            return ""
        if effect.string_val is None:
            raise MalformedScenario(f"title card specialEffectData[{index}] has no stringVal")
        prefix = ""
        if out and not out.endswith(DIVIDER) and not out.endswith(TITLE_CLOSE):
            prefix = DIVIDER
        return f"{prefix}**-- {escape_markdown(effect.string_val)} --**\n\n"

    # Camera moves, sound cues, character motions, etc. have no prose form
    return ""


def story_heading(name: str) -> str:
    """pandoc title block for a whole story."""
    return f"% {escape_markdown(name)}\n\n"


def chapter_heading(caption: str, title: str) -> str:
    return f"# {escape_markdown(caption)} - {escape_markdown(title)}\n\n{DIVIDER}"


def safe_filename(name: str) -> str:
    """Replace characters Windows rejects in filenames and drop a trailing dot."""
    name = _WINDOWS_CHARS_RE.sub("_", name)
    if name.endswith("."):
        name = name[:-1]
    return name


def book_filename(event_id: str, name: str) -> str:
    """e.g. ``"007 - Poppin' Party Holiday.epub"``"""
    return f"{str(event_id).zfill(3)} - {safe_filename(name)}.epub"
