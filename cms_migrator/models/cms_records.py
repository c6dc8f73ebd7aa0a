from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _dedup(values: Optional[list[str]]) -> list[str]:
    seen = set()
    deduped = []
    for item in values or []:
        if item not in seen:
            seen.add(item)
            deduped.append(item)
    return deduped


class CmsRecord(BaseModel):
    """Fields shared by every record stored in the CMS."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    # Source post id during ingestion, store record id once scanned back
    id: str = ""
    title: str = ""
    slug: str = ""
    body: str = ""
    author_name: str = Field("", alias="authorName")
    author_url: str = Field("", alias="authorUrl")

    def to_store_fields(self) -> dict[str, Any]:
        """Dump the record for an insert: camelCase keys, no ``id``, no unset optionals."""
        return self.model_dump(by_alias=True, exclude={"id"}, exclude_none=True)


class BlogRecord(CmsRecord):
    published_at: str = Field("", alias="publishedAt")
    is_public: bool = Field(False, alias="isPublic")
    sites_published_on: list[str] = Field(default_factory=list, alias="sitesPublishedOn")
    old_site_url: str = Field("", alias="oldSiteUrl")
    staging_site_url: str = Field("", alias="stagingSiteUrl")
    # Only written by the AI repair pass
    ai_rewritten_body: Optional[str] = Field(None, alias="aiRewrittenBody")

    @field_validator("sites_published_on", mode="before")
    @classmethod
    def _dedup_sites(cls, v: Optional[list[str]]):
        return _dedup(v)


class ProjectRecord(CmsRecord):
    cover_image_src: str = Field("", alias="coverImageSrc")
    published_at: int = Field(0, alias="publishedAt")
    publication_status: str = Field("", alias="publicationStatus")
    course: str = ""
    tag: list[str] = Field(default_factory=list)
    ai_rewritten_body: str = Field("", alias="aiRewrittenBody")

    @field_validator("tag", mode="before")
    @classmethod
    def _dedup_tags(cls, v: Optional[list[str]]):
        return _dedup(v)
