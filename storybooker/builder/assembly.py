"""
Story assembly — joins chapter fragments into one markdown document.
"""

from storybooker.markdown import chapter_heading, story_heading
from storybooker.models import StoryChapter


def assemble_story(
    story_name: str,
    chapters: list[tuple[StoryChapter, str]],
    region: int,
) -> str:
    """
    Build the complete markdown for one event story.

    Args:
        story_name: Localized event name (escaped here)
        chapters: (chapter metadata, rendered fragment) pairs in reading order
        region: Region index used to pick chapter captions and titles

    Returns:
        Markdown starting with a pandoc title block
    """
    parts = [story_heading(story_name)]
    for chapter, fragment in chapters:
        parts.append(chapter_heading(chapter.caption(region), chapter.title(region)))
        parts.append(fragment)
    return "".join(parts)
