"""
Betteh Music CMS - Document Models

Pydantic models for the single JSON document that backs the site.  Field
names on disk are camelCase (``passwordHash``, ``createdAt``); Python code
uses snake_case attributes.

All lookups are linear scans over the in-memory collections.  The
collections are small (tens of entries) so no indexing is needed.
"""

import uuid
from datetime import datetime, timezone
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from betteh_cms.errors import NotFound


def new_id() -> str:
    """Generate a unique entity id."""
    return uuid.uuid4().hex


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class _Entity(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(default_factory=new_id)


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
class Admin(_Entity):
    username: str
    password_hash: str = Field(alias="passwordHash")


class Post(_Entity):
    title: str
    description: str = ""
    image: str = ""
    created_at: datetime = Field(default_factory=utcnow, alias="createdAt")


class GalleryItem(_Entity):
    filename: str
    caption: str = ""
    created_at: datetime = Field(default_factory=utcnow, alias="createdAt")


class StaffMember(_Entity):
    name: str
    title: str = ""
    bio: str = ""
    photo: str = ""


class SocialLinks(BaseModel):
    facebook: str = ""
    instagram: str = ""
    tiktok: str = ""
    youtube: str = ""


# ---------------------------------------------------------------------------
# Root document
# ---------------------------------------------------------------------------
class Document(BaseModel):
    """The whole site state; owner of every entity."""

    admins: List[Admin] = Field(default_factory=list)
    posts: List[Post] = Field(default_factory=list)
    gallery: List[GalleryItem] = Field(default_factory=list)
    staff: List[StaffMember] = Field(default_factory=list)
    social: SocialLinks = Field(default_factory=SocialLinks)

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, indent=2)

    # -- lookups ----------------------------------------------------------
    def find_admin(self, username: str) -> Optional[Admin]:
        """Exact, case-sensitive username match."""
        for admin in self.admins:
            if admin.username == username:
                return admin
        return None

    def find_post(self, post_id: str) -> Optional[Post]:
        for post in self.posts:
            if post.id == post_id:
                return post
        return None

    def find_gallery_item(self, item_id: str) -> Optional[GalleryItem]:
        for item in self.gallery:
            if item.id == item_id:
                return item
        return None

    def find_staff_member(self, member_id: str) -> Optional[StaffMember]:
        for member in self.staff:
            if member.id == member_id:
                return member
        return None

    def get_post(self, post_id: str) -> Post:
        post = self.find_post(post_id)
        if post is None:
            raise NotFound("Post", post_id)
        return post

    def get_gallery_item(self, item_id: str) -> GalleryItem:
        item = self.find_gallery_item(item_id)
        if item is None:
            raise NotFound("Gallery item", item_id)
        return item

    def get_staff_member(self, member_id: str) -> StaffMember:
        member = self.find_staff_member(member_id)
        if member is None:
            raise NotFound("Staff member", member_id)
        return member
