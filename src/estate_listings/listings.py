"""Listing operations used by the UI: search, lookup and admin CRUD.

Every public method returns a tagged ``Ok``/``Failure`` result. Failures are
logged here, where they happen, and the caller only sees a short message.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import UTC, datetime
from typing import Any

import aiosqlite

from estate_listings.db import PropertyStorage, SearchQueryService
from estate_listings.logging import get_logger
from estate_listings.models import (
    FilterCriteria,
    FilterOptions,
    Property,
    PropertyCreate,
    PropertyUpdate,
    SearchResult,
)
from estate_listings.results import (
    ErrorKind,
    Failure,
    MediaUploadError,
    Ok,
    PropertyNotFoundError,
    Result,
)
from estate_listings.utils.media_store import MediaStore, UploadedFile

logger = get_logger(__name__)

# Lower-level failures a listing operation converts into a Failure result
_STORAGE_ERRORS = (aiosqlite.Error, ValueError, OverflowError)


class ListingService:
    """Search and administer listings on top of the storage gateway and media store."""

    def __init__(self, storage: PropertyStorage, media: MediaStore) -> None:
        self._storage = storage
        self._media = media
        self._queries = SearchQueryService(storage)

    async def search(self, criteria: FilterCriteria) -> Result[SearchResult]:
        """Paginated, filtered search with collection-wide stats."""
        try:
            result = await self._queries.search(criteria)
        except _STORAGE_ERRORS:
            logger.error("search_failed", criteria=criteria.model_dump(), exc_info=True)
            return Failure(ErrorKind.UPSTREAM_FAILURE, "Failed to fetch properties")
        return Ok(result)

    async def get_by_id(self, property_id: str) -> Result[Property]:
        """Look up one listing."""
        try:
            prop = await self._storage.find_unique(property_id)
        except _STORAGE_ERRORS:
            logger.error("property_fetch_failed", property_id=property_id, exc_info=True)
            return Failure(ErrorKind.UPSTREAM_FAILURE, "Failed to fetch property")
        if prop is None:
            return Failure(ErrorKind.NOT_FOUND, "Property not found")
        return Ok(prop)

    async def filter_options(self) -> Result[FilterOptions]:
        """Landing-page choices: locations, types and price buckets."""
        try:
            options = await self._queries.get_filter_options()
        except _STORAGE_ERRORS:
            logger.error("filter_options_failed", exc_info=True)
            return Failure(ErrorKind.UPSTREAM_FAILURE, "Failed to fetch filter options")
        return Ok(options)

    async def recommended(self, limit: int) -> Result[list[Property]]:
        """Listings flagged as recommended, newest first."""
        try:
            props = await self._queries.get_recommended(limit)
        except _STORAGE_ERRORS:
            logger.error("recommended_fetch_failed", exc_info=True)
            return Failure(ErrorKind.UPSTREAM_FAILURE, "Failed to fetch properties")
        return Ok(props)

    async def create(
        self,
        data: PropertyCreate,
        images: Sequence[UploadedFile] = (),
        videos: Sequence[UploadedFile] = (),
    ) -> Result[Property]:
        """Upload media, then insert the listing.

        Nothing is inserted if an upload fails. Files already written stay on
        disk if the insert itself fails.
        """
        try:
            image_paths = await self._media.save_all(images)
            video_paths = await self._media.save_all(videos)
        except MediaUploadError:
            logger.error("property_media_upload_failed", name=data.name, exc_info=True)
            return Failure(ErrorKind.UPLOAD_FAILURE, "Failed to upload images")

        prop = Property(
            **data.model_dump(),
            image=tuple(image_paths),
            video=tuple(video_paths),
        )
        try:
            stored = await self._storage.insert(prop)
        except _STORAGE_ERRORS:
            logger.error("property_create_failed", property_id=prop.id, exc_info=True)
            return Failure(ErrorKind.UPSTREAM_FAILURE, "Failed to create property")

        logger.info(
            "property_created",
            property_id=stored.id,
            images=len(image_paths),
            videos=len(video_paths),
        )
        return Ok(stored)

    async def update(
        self,
        property_id: str,
        data: PropertyUpdate,
        new_images: Sequence[UploadedFile] = (),
        new_videos: Sequence[UploadedFile] = (),
    ) -> Result[Property]:
        """Apply a partial update.

        Only fields the caller set change. For each media list: new uploads
        are appended after the retained ``existing_*`` paths; without uploads
        an explicitly passed ``existing_*`` list replaces the stored one;
        otherwise the list is left alone.
        """
        changes: dict[str, Any] = data.field_changes()

        try:
            uploaded_images = await self._media.save_all(new_images)
            uploaded_videos = await self._media.save_all(new_videos)
        except MediaUploadError:
            logger.error("property_media_upload_failed", property_id=property_id, exc_info=True)
            return Failure(ErrorKind.UPLOAD_FAILURE, "Failed to upload images")

        image = _merge_media(data.existing_images, uploaded_images)
        if image is not None:
            changes["image"] = image
        video = _merge_media(data.existing_videos, uploaded_videos)
        if video is not None:
            changes["video"] = video

        if not changes:
            return Failure(ErrorKind.NO_CHANGES, "No changes to update")

        changes["updated_at"] = datetime.now(UTC)
        try:
            updated = await self._storage.update(property_id, changes)
        except PropertyNotFoundError:
            logger.warning("property_update_missing", property_id=property_id)
            return Failure(ErrorKind.NOT_FOUND, "Property not found")
        except _STORAGE_ERRORS as e:
            logger.error("property_update_failed", property_id=property_id, exc_info=True)
            return Failure(ErrorKind.UPSTREAM_FAILURE, str(e) or "Failed to update property")

        logger.info("property_updated", property_id=property_id, fields=sorted(changes))
        return Ok(updated)

    async def delete(self, property_id: str) -> Result[None]:
        """Delete a listing. Its media files are not removed."""
        try:
            await self._storage.delete(property_id)
        except PropertyNotFoundError:
            logger.warning("property_delete_missing", property_id=property_id)
            return Failure(ErrorKind.NOT_FOUND, "Property not found")
        except _STORAGE_ERRORS:
            logger.error("property_delete_failed", property_id=property_id, exc_info=True)
            return Failure(ErrorKind.UPSTREAM_FAILURE, "Failed to delete property")

        logger.info("property_deleted", property_id=property_id)
        return Ok(None)


def _merge_media(existing: list[str] | None, uploaded: list[str]) -> list[str] | None:
    """Final media list for an update, or None to leave the stored list untouched."""
    if uploaded:
        return [*(existing or []), *uploaded]
    if existing is not None:
        return list(existing)
    return None
