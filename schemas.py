"""
Request schemas for the BlogSpace API.

Each schema is both the allow-list of fields a route accepts and the rules
those fields must satisfy. Fields are snake_case; the camelCase spelling
(``mediaGallery``, ``fullName``) is accepted as an alias. Unknown fields are
dropped.
"""

import re
from typing import Annotated, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, StringConstraints, field_validator
from pydantic.alias_generators import to_camel

from models import CATEGORIES

USERNAME_PATTERN = re.compile(r'^[a-zA-Z0-9_]+$')

Category = Literal[tuple(CATEGORIES)]
Tag = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=20)]
SortKey = Literal['newest', 'oldest', 'popular', 'trending']


class RequestSchema(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra='ignore',
    )


# -----------------------------------------------------------------------------
# Users
# -----------------------------------------------------------------------------

class SignupRequest(RequestSchema):
    username: str = Field(..., min_length=3, max_length=30)
    email: EmailStr
    password: str = Field(..., min_length=6)
    full_name: str = Field(..., min_length=2, max_length=100)
    bio: str = Field('', max_length=500)
    social_links: Dict[str, str] = Field(default_factory=dict)

    @field_validator('username')
    @classmethod
    def validate_username(cls, v):
        if not USERNAME_PATTERN.match(v):
            raise ValueError('Username can only contain letters, numbers, and underscores')
        return v


class LoginRequest(RequestSchema):
    email: EmailStr
    password: str = Field(..., min_length=1)


class ProfileUpdate(RequestSchema):
    full_name: Optional[str] = Field(None, min_length=2, max_length=100)
    bio: Optional[str] = Field(None, max_length=500)
    social_links: Optional[Dict[str, str]] = None
    notification_preferences: Optional[Dict[str, bool]] = None


# -----------------------------------------------------------------------------
# Posts
# -----------------------------------------------------------------------------

class MediaRef(RequestSchema):
    type: Literal['image', 'video', 'none'] = 'none'
    url: Optional[str] = None
    public_id: Optional[str] = None
    format: Optional[str] = None
    size: Optional[int] = None
    duration: Optional[float] = None
    thumbnail: Optional[str] = None
    width: Optional[int] = None
    height: Optional[int] = None


class GalleryItem(RequestSchema):
    type: Literal['image', 'video']
    url: str = Field(..., min_length=1)
    public_id: Optional[str] = None
    format: Optional[str] = None
    size: Optional[int] = None
    duration: Optional[float] = None
    order: Optional[int] = None
    placement: Literal['header', 'inline', 'footer'] = 'header'


class PostCreate(RequestSchema):
    title: str = Field(..., min_length=5, max_length=200)
    content: str = Field(..., min_length=10)
    excerpt: str = Field(..., min_length=10, max_length=300)
    category: Category
    tags: List[Tag] = Field(default_factory=list, max_length=10)
    media: Optional[MediaRef] = None
    media_gallery: List[GalleryItem] = Field(default_factory=list, max_length=20)
    status: Literal['draft', 'published'] = 'draft'

    @field_validator('title')
    @classmethod
    def strip_title(cls, v):
        v = v.strip()
        if len(v) < 5:
            raise ValueError('Title must be between 5 and 200 characters')
        return v


class PostUpdate(RequestSchema):
    """Mutable post fields; anything else in the body is ignored."""
    title: Optional[str] = Field(None, min_length=5, max_length=200)
    content: Optional[str] = Field(None, min_length=10)
    excerpt: Optional[str] = Field(None, min_length=10, max_length=300)
    category: Optional[Category] = None
    tags: Optional[List[Tag]] = Field(None, max_length=10)
    media: Optional[MediaRef] = None
    media_gallery: Optional[List[GalleryItem]] = Field(None, max_length=20)
    status: Optional[Literal['draft', 'published', 'archived']] = None

    @field_validator('title')
    @classmethod
    def strip_title(cls, v):
        if v is None:
            return v
        v = v.strip()
        if len(v) < 5:
            raise ValueError('Title must be between 5 and 200 characters')
        return v

    def changes(self):
        """Fields the client actually sent with a non-null value."""
        return {
            name: getattr(self, name)
            for name in self.model_fields_set
            if getattr(self, name) is not None
        }


class CommentCreate(RequestSchema):
    content: str = Field(..., min_length=1, max_length=1000)


# -----------------------------------------------------------------------------
# Listing
# -----------------------------------------------------------------------------

def _clamped_int(value, default, lower, upper=None):
    try:
        number = int(value)
    except (TypeError, ValueError):
        return default
    number = max(lower, number)
    if upper is not None:
        number = min(upper, number)
    return number


class PostListQuery(RequestSchema):
    page: int = 1
    limit: int = 10
    category: Optional[str] = None
    search: Optional[str] = None
    sort: SortKey = 'newest'

    @field_validator('page', mode='before')
    @classmethod
    def clamp_page(cls, v):
        return _clamped_int(v, 1, 1)

    @field_validator('limit', mode='before')
    @classmethod
    def clamp_limit(cls, v):
        return _clamped_int(v, 10, 1, 100)

    @field_validator('category')
    @classmethod
    def validate_category(cls, v):
        if v is None or v == '' or v == 'all':
            return None
        if v not in CATEGORIES:
            raise ValueError('Invalid category')
        return v

    @field_validator('search')
    @classmethod
    def strip_search(cls, v):
        if v is None:
            return None
        return v.strip() or None

    @field_validator('sort', mode='before')
    @classmethod
    def default_sort(cls, v):
        return v if v in ('newest', 'oldest', 'popular', 'trending') else 'newest'
