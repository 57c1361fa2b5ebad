"""
Hero section and blog post schemas
"""

from datetime import datetime
from typing import List, Literal, Optional
from pydantic import BaseModel, Field

class HeroSection(BaseModel):
    """Singleton homepage banner"""
    title: str = ""
    subtitle: str = ""
    button_text: str = ""
    button_link: str = ""
    background_image: str = ""

DEFAULT_HERO = HeroSection(
    title="Welcome to Your Site",
    subtitle="Build amazing experiences with our platform",
    button_text="Get Started",
    button_link="#",
)

class PostCreate(BaseModel):
    """Schema for creating a blog post"""
    title: str = Field(min_length=1)
    slug: Optional[str] = None
    content: str = ""
    cover_image: str = ""
    tags: List[str] = Field(default_factory=list)
    status: Literal["draft", "published"] = "draft"

class PostUpdate(BaseModel):
    """Partial update of a blog post"""
    title: Optional[str] = Field(None, min_length=1)
    slug: Optional[str] = None
    content: Optional[str] = None
    cover_image: Optional[str] = None
    tags: Optional[List[str]] = None
    status: Optional[Literal["draft", "published"]] = None

class BlogPost(PostCreate):
    """Stored blog post"""
    id: str
    slug: str
    author_id: str
    created_at: datetime
    updated_at: datetime
