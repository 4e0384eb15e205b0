"""Number filter and fixed-size pagination over a story list."""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass

from deploy_tracker.domain.models import UserStory

STORIES_PER_PAGE = 10


@dataclass(frozen=True)
class StoryPage:
    """One visible page of the filtered story list."""

    items: tuple[UserStory, ...]
    page_number: int
    page_size: int
    total_items: int
    page_count: int


def filter_by_number(stories: Sequence[UserStory], query: str) -> list[UserStory]:
    """Keep stories whose number contains ``query`` (case-sensitive), in input order."""
    if not query:
        return list(stories)
    return [story for story in stories if query in story.number]


def page_count(total_items: int, page_size: int = STORIES_PER_PAGE) -> int:
    if page_size < 1:
        raise ValueError("page_size must be at least 1.")
    if total_items < 0:
        raise ValueError("total_items must not be negative.")
    return math.ceil(total_items / page_size)


def paginate(
    stories: Sequence[UserStory], page_size: int = STORIES_PER_PAGE, page_number: int = 1
) -> list[UserStory]:
    """Return the 1-based page ``page_number``; pages past the end are empty."""
    if page_size < 1:
        raise ValueError("page_size must be at least 1.")
    if page_number < 1:
        raise ValueError("page_number must be at least 1.")
    start = (page_number - 1) * page_size
    return list(stories[start : start + page_size])


def sort_by_date(stories: Sequence[UserStory], *, newest_first: bool = True) -> list[UserStory]:
    return sorted(stories, key=lambda story: story.date, reverse=newest_first)


def visible_page(
    stories: Sequence[UserStory],
    *,
    query: str = "",
    page_number: int = 1,
    page_size: int = STORIES_PER_PAGE,
) -> StoryPage:
    filtered = filter_by_number(stories, query)
    return StoryPage(
        items=tuple(paginate(filtered, page_size, page_number)),
        page_number=page_number,
        page_size=page_size,
        total_items=len(filtered),
        page_count=page_count(len(filtered), page_size),
    )
