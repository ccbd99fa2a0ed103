"""JSON API routes for browsing and administering listings."""

from __future__ import annotations

from typing import Any, Final

from fastapi import APIRouter, Request
from fastapi.responses import FileResponse, JSONResponse, Response
from pydantic import BaseModel, ValidationError
from starlette.datastructures import FormData, UploadFile

from estate_listings.listings import ListingService
from estate_listings.logging import get_logger
from estate_listings.models import PropertyCreate, PropertyUpdate
from estate_listings.results import ErrorKind, Failure, Ok, Result
from estate_listings.utils.media_store import MediaStore, UploadedFile
from estate_listings.web.auth import AdminDep
from estate_listings.web.filters import CriteriaDep

logger = get_logger(__name__)

router = APIRouter()

_ERROR_STATUS: Final[dict[ErrorKind, int]] = {
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.NO_CHANGES: 400,
    ErrorKind.UPLOAD_FAILURE: 500,
    ErrorKind.UPSTREAM_FAILURE: 500,
}

# Form field -> model field for multipart create/update bodies
_FORM_FIELDS: Final[dict[str, str]] = {
    "name": "name",
    "address": "address",
    "location": "location",
    "price": "price",
    "size": "size",
    "bhk": "bhk",
    "type": "type",
    "description": "description",
    "isRecommended": "is_recommended",
}
_BLANK_MEANS_NULL: Final = frozenset({"bhk", "type"})

_MEDIA_TYPES: Final = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
    ".webp": "image/webp",
    ".mp4": "video/mp4",
    ".webm": "video/webm",
    ".mov": "video/quicktime",
}


def _get_listings(request: Request) -> ListingService:
    return request.app.state.listings  # type: ignore[no-any-return]


def _get_media(request: Request) -> MediaStore:
    return request.app.state.media  # type: ignore[no-any-return]


def _dump(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json", by_alias=True)
    if isinstance(value, list):
        return [_dump(v) for v in value]
    return value


def _respond(result: Result[Any], *, status_code: int = 200) -> JSONResponse:
    """Render a service result: the value on success, ``{"error": ...}`` otherwise."""
    if isinstance(result, Failure):
        return JSONResponse({"error": result.message}, status_code=_ERROR_STATUS[result.kind])
    return JSONResponse(_dump(result.value), status_code=status_code)


def _validation_error(e: ValidationError) -> JSONResponse:
    details = [f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()]
    return JSONResponse({"error": "Invalid property data", "details": details}, status_code=422)


def _form_values(form: FormData) -> dict[str, Any]:
    """Scalar fields present in the form, keyed by model field name."""
    values: dict[str, Any] = {}
    for form_key, field_name in _FORM_FIELDS.items():
        if form_key not in form:
            continue
        raw = form.get(form_key)
        if isinstance(raw, UploadFile):
            continue
        value = raw.strip() if isinstance(raw, str) else raw
        if field_name in _BLANK_MEANS_NULL and value == "":
            value = None
        values[field_name] = value
    return values


def _form_paths(form: FormData, key: str) -> list[str] | None:
    """Retained media paths, or None when the field was not sent at all."""
    if key not in form:
        return None
    return [v for v in form.getlist(key) if isinstance(v, str) and v.strip()]


async def _form_files(form: FormData, key: str) -> list[UploadedFile]:
    files: list[UploadedFile] = []
    for item in form.getlist(key):
        if not isinstance(item, UploadFile) or not item.filename:
            continue
        files.append(UploadedFile(filename=item.filename, content=await item.read()))
    return files


@router.get("/health")
async def health_check() -> JSONResponse:
    """Liveness probe."""
    return JSONResponse({"status": "ok"})


@router.get("/api/properties")
async def search_properties(request: Request, criteria: CriteriaDep) -> JSONResponse:
    """Filtered, paginated listings with collection-wide stats."""
    return _respond(await _get_listings(request).search(criteria))


@router.get("/api/properties/recommended")
async def recommended_properties(request: Request, limit: int | None = None) -> JSONResponse:
    """Listings flagged as recommended."""
    settings = request.app.state.settings
    capped = settings.recommended_limit if limit is None else settings.clamp_limit(limit)
    return _respond(await _get_listings(request).recommended(capped))


@router.get("/api/filter-options")
async def filter_options(request: Request) -> JSONResponse:
    """Locations, types and price buckets for the landing-page search box."""
    return _respond(await _get_listings(request).filter_options())


@router.get("/api/properties/{property_id}")
async def property_detail(request: Request, property_id: str) -> JSONResponse:
    """One listing by id."""
    return _respond(await _get_listings(request).get_by_id(property_id))


@router.post("/api/properties")
async def create_property(request: Request, admin: AdminDep) -> JSONResponse:
    """Create a listing from a multipart form with optional images/videos."""
    form = await request.form()
    try:
        data = PropertyCreate.model_validate(_form_values(form))
    except ValidationError as e:
        return _validation_error(e)

    images = await _form_files(form, "images")
    videos = await _form_files(form, "videos")
    result = await _get_listings(request).create(data, images, videos)
    if isinstance(result, Ok):
        logger.info("admin_property_created", admin=admin.user_id, property_id=result.value.id)
    return _respond(result, status_code=201)


@router.patch("/api/properties/{property_id}")
async def update_property(request: Request, property_id: str, admin: AdminDep) -> JSONResponse:
    """Partially update a listing; only fields present in the form change."""
    form = await request.form()
    values = _form_values(form)
    existing_images = _form_paths(form, "existingImages")
    if existing_images is not None:
        values["existing_images"] = existing_images
    existing_videos = _form_paths(form, "existingVideos")
    if existing_videos is not None:
        values["existing_videos"] = existing_videos
    try:
        data = PropertyUpdate.model_validate(values)
    except ValidationError as e:
        return _validation_error(e)

    images = await _form_files(form, "images")
    videos = await _form_files(form, "videos")
    result = await _get_listings(request).update(property_id, data, images, videos)
    if isinstance(result, Ok):
        logger.info("admin_property_updated", admin=admin.user_id, property_id=property_id)
    return _respond(result)


@router.delete("/api/properties/{property_id}")
async def delete_property(request: Request, property_id: str, admin: AdminDep) -> JSONResponse:
    """Delete a listing. Media files stay on disk."""
    result = await _get_listings(request).delete(property_id)
    if isinstance(result, Ok):
        logger.info("admin_property_deleted", admin=admin.user_id, property_id=property_id)
        return JSONResponse({"success": True})
    return _respond(result)


@router.get("/properties/{filename}")
async def serve_media(request: Request, filename: str) -> Response:
    """Serve an uploaded media file.

    Returns the file with immutable cache headers (stored names are unique).
    """
    path = _get_media(request).resolve(filename)
    if path is None:
        return JSONResponse({"error": "not found"}, status_code=404)

    media_type = _MEDIA_TYPES.get(path.suffix.lower(), "application/octet-stream")
    return FileResponse(
        path,
        media_type=media_type,
        headers={"Cache-Control": "public, max-age=31536000, immutable"},
    )
