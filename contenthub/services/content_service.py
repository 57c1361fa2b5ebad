"""
Hero section and blog posts, plus first-run demo content
"""

import logging
import uuid
from datetime import timedelta
from typing import List, Optional

from contenthub.core.config import settings
from contenthub.core.errors import ContentHubError, NotFoundError, ValidationError
from contenthub.schemas import AuthUser, BlogPost, EventCreate, HeroSection, PostCreate, PostUpdate
from contenthub.schemas.content import DEFAULT_HERO
from contenthub.services.auth_service import AuthProvider
from contenthub.services.form_engine import generate_slug
from contenthub.services.repositories import HeroRepo, PostRepo
from contenthub.services.ticketing_service import EventService
from contenthub.utils.timeutils import utcnow

logger = logging.getLogger(__name__)


class ContentService:
    """Hero and blog post management"""

    def __init__(self, hero: HeroRepo, posts: PostRepo):
        self.hero = hero
        self.posts = posts

    def get_hero(self) -> HeroSection:
        """Stored hero, storing the default one on first read"""
        hero = self.hero.get()
        if hero is None:
            hero = DEFAULT_HERO.model_copy()
            self.hero.save(hero)
        return hero

    def update_hero(self, hero: HeroSection) -> HeroSection:
        self.hero.save(hero)
        return hero

    def list_posts(self) -> List[BlogPost]:
        return self.posts.list_all()

    def get_post_by_slug(self, slug: str) -> BlogPost:
        post = self.posts.find_by_slug(slug)
        if not post:
            raise NotFoundError("Post")
        return post

    def get_post(self, post_id: str) -> BlogPost:
        post = self.posts.get(post_id)
        if not post:
            raise NotFoundError("Post")
        return post

    def _unique_slug(self, source: str, exclude_id: Optional[str] = None) -> str:
        slug = generate_slug(source)
        if not slug:
            raise ValidationError("Slug must contain at least one letter or digit", field="slug")
        existing = self.posts.find_by_slug(slug)
        if existing and existing.id != exclude_id:
            raise ValidationError(f"A post with slug '{slug}' already exists", field="slug")
        return slug

    def create_post(self, payload: PostCreate, user: AuthUser) -> BlogPost:
        now = utcnow()
        post = BlogPost(
            **payload.model_dump(exclude={"slug"}),
            id=str(uuid.uuid4()),
            slug=self._unique_slug(payload.slug or payload.title),
            author_id=user.id,
            created_at=now,
            updated_at=now,
        )
        self.posts.save(post)
        logger.info(f"Post created: {post.slug}")
        return post

    def update_post(self, post_id: str, payload: PostUpdate) -> BlogPost:
        post = self.get_post(post_id)
        changes = payload.model_dump(exclude_unset=True)
        if changes.get("slug"):
            changes["slug"] = self._unique_slug(changes["slug"], exclude_id=post.id)
        else:
            changes.pop("slug", None)
        changes = {k: v for k, v in changes.items() if v is not None}
        updated = post.model_copy(update={**changes, "updated_at": utcnow()})
        self.posts.save(updated)
        return updated

    def delete_post(self, post_id: str) -> None:
        self.get_post(post_id)
        self.posts.delete(post_id)
        logger.info(f"Post deleted: {post_id}")


DEMO_POST = PostCreate(
    title="Welcome to ContentHub",
    content="This is a sample post created on first run. Edit or delete it from the dashboard.",
    tags=["welcome"],
    status="published",
)


def seed_demo_content(auth: AuthProvider, content: ContentService, events: EventService) -> None:
    """Create the demo admin account, and a sample post and event when there are no posts"""
    try:
        admin = auth.sign_up(
            settings.DEMO_ADMIN_EMAIL,
            settings.DEMO_ADMIN_PASSWORD,
            {"name": "Demo Admin", "role": "admin"},
        )
        logger.info(f"Demo admin created: {settings.DEMO_ADMIN_EMAIL}")
    except ValidationError:
        admin = AuthUser(id="demo-admin", email=settings.DEMO_ADMIN_EMAIL)
    except ContentHubError as e:
        logger.warning(f"Demo admin could not be created: {e.message}")
        admin = AuthUser(id="demo-admin", email=settings.DEMO_ADMIN_EMAIL)

    if content.list_posts():
        return

    content.create_post(DEMO_POST, admin)
    events.create_event(
        EventCreate(
            title="Community Meetup",
            description="A sample event with open registration.",
            location="Main Hall",
            date_time=utcnow() + timedelta(days=30),
            capacity=50,
            enable_waitlist=True,
        ),
        admin,
    )
    logger.info("Demo post and event created")
