"""Pydantic models for the canonical, denormalized entities.

Every entity is frozen: it is produced once per pipeline run and never mutated. Later stages
derive new instances with ``model_copy(update=...)``. Serialized field names are camelCase
(``storytellerIds``, ``hasVideo``) to match what the static front end reads.
"""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

UNKNOWN_LOCATION = "Unknown"
ANONYMOUS = "Anonymous"


class StorytellerRole(str, Enum):
    """Normalized storyteller roles."""

    VOLUNTEER = "volunteer"
    FRIEND = "friend"
    SERVICE_PROVIDER = "service provider"
    OTHER = "other"


class EntityKind(str, Enum):
    """The four entity kinds processed by the pipeline."""

    STORY = "story"
    STORYTELLER = "storyteller"
    THEME = "theme"
    MEDIA = "media"


class CanonicalEntity(BaseModel):
    """Base for canonical entities."""

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
    )

    id: str

    def to_view(self) -> Dict[str, Any]:
        """JSON-ready dict with camelCase keys."""
        return self.model_dump(mode="json", by_alias=True)


class Story(CanonicalEntity):
    """A story with its storytellers, media and derived themes."""

    title: str = Field(default="", description="Story title, generated when the record has none")
    body: str = Field(default="", description="Cleaned story copy")
    transcript: str = Field(default="", description="Cleaned story transcript")
    excerpt: str = Field(default="", description="Fixed-length excerpt of body or transcript")
    video_url: Optional[str] = Field(default=None, description="Video story link")
    has_video: bool = False
    featured: bool = False
    storyteller_ids: List[str] = Field(default_factory=list)
    storyteller_names: List[str] = Field(default_factory=list)
    media_ids: List[str] = Field(default_factory=list)
    theme_ids: List[str] = Field(
        default_factory=list, description="Derived theme set (deduplicated, first-seen order)"
    )
    location: str = UNKNOWN_LOCATION
    created_at: str = ""


class Storyteller(CanonicalEntity):
    """A person who contributed stories or media."""

    name: str = ANONYMOUS
    role: StorytellerRole = StorytellerRole.OTHER
    location: str = UNKNOWN_LOCATION
    bio: str = ""
    profile_image: Optional[str] = None
    media_ids: List[str] = Field(default_factory=list)
    theme_ids: List[str] = Field(default_factory=list)
    quotes: List[str] = Field(default_factory=list)
    story_ids: List[str] = Field(default_factory=list)
    created_at: str = ""


class Theme(CanonicalEntity):
    """A theme; counters are computed from the indexes, never authored."""

    name: str = "Unnamed Theme"
    description: str = ""
    category: str = "Other"
    parent_id: Optional[str] = None
    story_count: int = Field(default=0, ge=0)
    media_count: int = Field(default=0, ge=0)
    storyteller_count: int = Field(default=0, ge=0)


class Media(CanonicalEntity):
    """A media item (interview, video, photo set). Themes are declared here."""

    file_name: str = "Untitled"
    type: str = "Unknown"
    transcript: str = ""
    summary: str = ""
    quotes: List[str] = Field(default_factory=list)
    theme_ids: List[str] = Field(default_factory=list)
    location: str = UNKNOWN_LOCATION
    storyteller_ids: List[str] = Field(default_factory=list)
    created_at: str = ""
