from datetime import datetime
from enum import Enum
from typing import Any, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class Category(str, Enum):
    personal_growth = "personal_growth"
    career = "career"
    relationships = "relationships"
    mindset = "mindset"
    mistakes_learned = "mistakes_learned"


class EmotionalTone(str, Enum):
    motivational = "motivational"
    sad = "sad"
    realization = "realization"
    gratitude = "gratitude"


class Visibility(str, Enum):
    public = "public"
    private = "private"


class AccessTier(str, Enum):
    free = "free"
    premium = "premium"


class LessonSort(str, Enum):
    newest = "newest"
    most_liked = "most_liked"


class Lesson(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    title: str
    description: str
    extended_description: Optional[str] = None
    category: Category
    emotional_tone: EmotionalTone
    image_url: Optional[str] = None
    visibility: Visibility = Visibility.public
    access_tier: AccessTier = AccessTier.free
    owner_id: UUID
    owner_subject_id: str
    likes: List[str] = Field(default_factory=list)
    likes_count: int = 0
    created_at: datetime
    updated_at: datetime


class LessonCreateRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    title: str = Field(min_length=1, max_length=200)
    description: str = Field(min_length=1, max_length=1000)
    extended_description: Optional[str] = Field(default=None, max_length=20000)
    category: Category
    emotional_tone: EmotionalTone
    image_url: Optional[str] = Field(default=None, max_length=2048)
    visibility: Visibility = Visibility.public
    access_tier: AccessTier = AccessTier.free


class LessonUpdateRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, min_length=1, max_length=1000)
    extended_description: Optional[str] = Field(default=None, max_length=20000)
    category: Optional[Category] = None
    emotional_tone: Optional[EmotionalTone] = None
    image_url: Optional[str] = Field(default=None, max_length=2048)
    visibility: Optional[Visibility] = None
    access_tier: Optional[AccessTier] = None

    def changes(self) -> dict[str, Any]:
        """Fields explicitly sent by the client; explicit nulls clear optional fields."""
        data = self.model_dump(exclude_unset=True)
        for required in ("title", "description", "category", "emotional_tone", "visibility", "access_tier"):
            if required in data and data[required] is None:
                data.pop(required)
        return data


class LessonListQuery(BaseModel):
    category: Optional[Category] = None
    emotional_tone: Optional[EmotionalTone] = None
    q: Optional[str] = Field(default=None, max_length=200)
    sort: LessonSort = LessonSort.newest
    limit: int = Field(default=20, ge=1, le=100)
    offset: int = Field(default=0, ge=0)

    @property
    def has_facet_filter(self) -> bool:
        return self.category is not None or self.emotional_tone is not None


class LessonView(BaseModel):
    id: UUID
    title: str
    description: str
    extended_description: Optional[str] = None
    category: Category
    emotional_tone: EmotionalTone
    image_url: Optional[str] = None
    visibility: Visibility
    access_tier: AccessTier
    owner_id: UUID
    owner_subject_id: str
    likes_count: int
    liked_by_me: bool = False
    masked: bool = False
    created_at: datetime
    updated_at: datetime


class LessonListResponse(BaseModel):
    items: List[LessonView]
    limit: int
    offset: int


class LikeToggleResponse(BaseModel):
    liked: bool
    likes_count: int


class FavoriteToggleResponse(BaseModel):
    favorited: bool
