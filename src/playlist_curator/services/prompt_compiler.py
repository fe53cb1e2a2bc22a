"""Prompt builders for topic normalization, curation and single-item classification.

Every builder is a pure function of its arguments.
"""

import json
from typing import List, Optional, Sequence

from playlist_curator.models.media import (
    DEFAULT_CATEGORY,
    RESERVED_CATEGORIES,
    Category,
    MediaItem,
)

MAX_EXEMPLARS_PER_CATEGORY = 5
NO_DESCRIPTION = "No description available"


def format_duration(seconds: Optional[int]) -> str:
    """Format seconds as H:MM:SS or M:SS."""
    if not seconds or seconds < 0:
        return "Unknown duration"

    hours, remainder = divmod(int(seconds), 3600)
    minutes, secs = divmod(remainder, 60)
    if hours > 0:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"


def build_normalization_prompt(objective: str) -> str:
    """Prompt asking the model to compress an objective into a search topic."""
    return f"""You are TopicOptimizer.

GOAL
Turn a casual playlist request into the short topic a search engine would need.

OUTPUT
Return only the topic, 2-5 words, on one line. No quotes, no extra text.

RULES
• Keep the main subject the user wants videos about.
• Drop filler such as "create a playlist", "find me", "I want".
• Drop time and duration requirements ("30 minute", "quick", "for my lunch break").
• Drop action words such as "watch", "learn", "see".

EXAMPLES
"Create a playlist for my 50-minute lunch break with trivia videos" -> trivia
"I want to learn about machine learning and AI" -> machine learning
"Find me cooking recipe videos for dinner" -> cooking recipes
"Videos about video game reviews and gameplay" -> video games
"Guitar tutorials for beginners to learn" -> guitar tutorials
"Philosophy and ethics discussion videos" -> philosophy

REQUEST ↓
<<<
{objective}
>>>"""


def _curation_entries(items: Sequence[MediaItem]) -> List[dict]:
    return [
        {
            "index": index,
            "title": item.title or "Untitled",
            "description": item.description or "",
            "durationSeconds": item.duration_seconds,
            "durationMinutes": item.duration_minutes,
            "channelName": item.channel_name or "Unknown",
        }
        for index, item in enumerate(items)
    ]


def build_curation_prompt(topic: str, items: Sequence[MediaItem]) -> str:
    """Prompt asking the model to pick the items that are primarily about ``topic``.

    Indices in the prompt are local to ``items``.
    """
    videos_json = json.dumps(_curation_entries(items), indent=2, ensure_ascii=False)

    return f"""You are PlaylistMatcher, a strict video classifier acting as a search engine.

TOPIC
"{topic}"

GOAL
Select the videos whose MAIN subject is the topic above.

RULES
• Select a video only if its title or description shows the topic is its primary subject.
• Select only when you are certain. If unsure, skip it.
• Returning zero videos is better than returning a wrong one.
• Judge relevance only; ignore duration.

VIDEOS ({len(items)} total) ↓
<<<
{videos_json}
>>>

OUTPUT
Return one JSON object and nothing else:
{{
  "folderName": "short descriptive name",
  "videoIndices": [indices of matching videos],
  "reasoning": "why these videos match overall",
  "videoReasons": {{"<index>": "why this video was chosen"}}
}}

If nothing matches:
{{"folderName": "Topic Name", "videoIndices": [], "reasoning": "No videos are primarily about this topic", "videoReasons": {{}}}}"""


def _describe_item(item: MediaItem) -> str:
    return (
        f"▶ Title: {item.title or 'Unknown Title'}\n"
        f"  Description: {item.description or NO_DESCRIPTION}\n"
        f"  Duration: {format_duration(item.duration_seconds)}"
    )


def format_category_contents(categories: Sequence[Category]) -> str:
    """Dump each category with up to five exemplar items."""
    if not categories:
        return "No folders found"

    blocks = []
    for category in categories:
        exemplars = category.exemplars[:MAX_EXEMPLARS_PER_CATEGORY]
        if exemplars:
            body = "\n\n".join(_describe_item(item) for item in exemplars)
        else:
            body = "No media items in this folder."
        blocks.append(f"FOLDER: {category.name}\n\n{body}")

    return "\n\n".join(blocks)


def build_classification_prompt(
    title: str,
    categories: Sequence[Category],
    allowed: Sequence[str],
    channel_name: Optional[str] = None,
    duration_seconds: Optional[int] = None,
    thumbnail_description: Optional[str] = None,
    default_category: str = DEFAULT_CATEGORY,
    reserved: Sequence[str] = RESERVED_CATEGORIES,
) -> str:
    """Prompt asking the model for the single best folder for one video."""
    video_lines = [f'Title: "{title}"']
    if channel_name:
        video_lines.append(f'Channel: "{channel_name}"')
    video_lines.append(f"Duration: {format_duration(duration_seconds)}")
    if thumbnail_description:
        video_lines.append(f'Thumbnail shows: "{thumbnail_description}"')
    video_block = "\n".join(video_lines)

    reserved_list = ", ".join(f'"{name}"' for name in reserved)
    suggestable = [name for name in allowed if name.lower() not in {r.lower() for r in reserved}]

    return f"""You are FolderSorter.

GOAL
Choose the folder where the user would save the video below.

VIDEO ↓
{video_block}

RULES
• Titles and folders may be in different languages; translate to English before deciding.
• Decide mainly from the folder name, then from the titles, descriptions and durations already inside it.
• If the video looks like news or trending content and no folder is about news or trends, answer "{default_category}".
• Never answer {reserved_list}.
• Answer only with one of the available folder names, nothing else.

CURRENT FOLDERS ↓
<<<
{format_category_contents(categories)}
>>>

AVAILABLE FOLDERS
{", ".join(suggestable)}

Folder:"""


def build_thumbnail_prompt() -> str:
    return (
        "Describe this YouTube video thumbnail in 1-2 sentences. Focus on the main "
        "subject, colors, text and overall theme. Be concise."
    )
