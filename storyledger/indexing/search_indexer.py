"""Flat search corpus for the static front end."""

from typing import Any, Dict, Iterable, List, Mapping, Optional

from loguru import logger
from pydantic import BaseModel, ConfigDict

from storyledger.extraction.relationship_resolver import ResolvedGraph
from storyledger.storage.schemas import Story, Storyteller


class SearchDocument(BaseModel):
    """One searchable row. ``text`` is a lower-cased blob for substring matching."""

    model_config = ConfigDict(frozen=True)

    type: str
    id: str
    title: str
    text: str


def _search_text(parts: Iterable[Optional[str]]) -> str:
    return " ".join(part.strip() for part in parts if part and part.strip()).lower()


def story_document(story: Story) -> SearchDocument:
    return SearchDocument(
        type="story",
        id=story.id,
        title=story.title,
        text=_search_text([story.title, story.excerpt, *story.storyteller_names]),
    )


def storyteller_document(
    storyteller: Storyteller, theme_names: Mapping[str, str]
) -> SearchDocument:
    return SearchDocument(
        type="storyteller",
        id=storyteller.id,
        title=storyteller.name,
        text=_search_text(
            [
                storyteller.name,
                storyteller.bio,
                *(theme_names[t] for t in storyteller.theme_ids if t in theme_names),
            ]
        ),
    )


def build_search_index(graph: ResolvedGraph) -> List[Dict[str, Any]]:
    """One row per story, then one per storyteller, in entity order."""
    theme_names = graph.theme_names()
    documents = [story_document(story) for story in graph.stories]
    documents.extend(storyteller_document(s, theme_names) for s in graph.storytellers)
    logger.info("Built search corpus with {} documents", len(documents))
    return [document.model_dump() for document in documents]
