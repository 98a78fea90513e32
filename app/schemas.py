"""
Pydantic schemas for request and response data validation.
Defines data structures for API endpoints with automatic validation and serialization.
"""
from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, field_validator
from datetime import date, datetime
from enum import Enum
from typing import Annotated, Optional, List, Union


class GalleryStatus(str, Enum):
    ACTIVE = "ACTIVE"
    ARCHIVED = "ARCHIVED"


class HeaderMediaType(str, Enum):
    IMAGE = "image"
    VIDEO = "video"


def _as_str(value):
    # Postgres UUID columns come back as uuid.UUID
    if value is None or isinstance(value, str):
        return value
    return str(value)


IdStr = Annotated[str, BeforeValidator(_as_str)]


class GalleryPhoto(BaseModel):
    """
    Photo as returned by the public gallery API.
    Studio payloads may carry extra keys; they are kept as-is.
    """
    id: Optional[IdStr] = None
    url: Optional[str] = None
    filename: Optional[str] = None
    public_id: Optional[str] = None
    created_at: Optional[Union[datetime, str]] = None

    model_config = ConfigDict(from_attributes=True, extra="allow")


class GalleryClient(BaseModel):
    """
    Gallery metadata for a client (event).
    Missing or NULL status reads as ACTIVE; unknown header media types read as None.
    """
    id: IdStr
    name: str
    slug: Optional[str] = None
    event_date: Optional[Union[date, str]] = None
    subheading: Optional[str] = None
    status: str = GalleryStatus.ACTIVE.value
    header_media_url: Optional[str] = None
    header_media_type: Optional[HeaderMediaType] = None

    model_config = ConfigDict(from_attributes=True, extra="allow")

    @field_validator("status", mode="before")
    @classmethod
    def default_status(cls, v):
        if not v:
            return GalleryStatus.ACTIVE.value
        if isinstance(v, GalleryStatus):
            return v.value
        return str(v).upper()

    @field_validator("header_media_type", mode="before")
    @classmethod
    def known_media_type(cls, v):
        if not v:
            return None
        if isinstance(v, HeaderMediaType):
            return v
        v = str(v).lower()
        return v if v in (HeaderMediaType.IMAGE.value, HeaderMediaType.VIDEO.value) else None


class GalleryResponse(GalleryClient):
    """
    Response schema for GET /api/gallery/{slug}.
    """
    photos: List[GalleryPhoto] = Field(default_factory=list)


class ErrorResponse(BaseModel):
    error: str


class UploadSignatureRequest(BaseModel):
    """
    Request schema for POST /api/photos/upload-signature.
    """
    clientId: Optional[str] = None


class UploadSignatureResponse(BaseModel):
    """
    Signed parameters for a direct browser-to-Cloudinary upload.
    Both camelCase and snake_case keys are returned for existing frontends.
    """
    timestamp: int
    signature: str
    folder: str
    cloudName: Optional[str] = None
    apiKey: Optional[str] = None
    cloud_name: Optional[str] = None
    api_key: Optional[str] = None


class SavePhotoRequest(BaseModel):
    """
    Request schema for POST /api/photos/save-record.
    Sent after the browser finished uploading to Cloudinary.
    """
    clientId: Optional[str] = None
    publicId: Optional[str] = None
    url: Optional[str] = None
    filename: Optional[str] = None


class SuccessResponse(BaseModel):
    success: bool = True
