"""Pydantic schemas for API."""
from pydantic import BaseModel, Field, ConfigDict
from typing import Any, Literal, Optional
from datetime import datetime


BloodGroup = Literal["A+", "A-", "B+", "B-", "AB+", "AB-", "O+", "O-"]
MemberStatus = Literal["active", "inactive"]
DerivedStatus = Literal["Active", "Inactive", "Expired", "Not Issued"]
NotificationType = Literal["request_approved", "request_rejected", "certificate_reminder", "broadcast"]
LayoutKind = Literal["certificate", "id-card"]

DOCUMENT_SLOTS = ("aadhar", "dl", "pan", "ration")


# Auth schemas
class SignInRequest(BaseModel):
    email: str
    password: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"


# Member schemas
class Certificate(BaseModel):
    id: str
    issued_date: datetime
    expiry_date: datetime


class MemberCreate(BaseModel):
    """Payload of the create-member form."""
    name: str = Field(min_length=2)
    mobile: str = Field(pattern=r"^\d{10}$")
    address: str = Field(min_length=10)
    blood_group: BloodGroup
    garage_name: str = Field(min_length=3)
    dob: datetime
    photo_url: str = ""
    documents: dict[str, Optional[str]] = Field(default_factory=dict)
    tags: list[str] = Field(default_factory=list)
    aadhar_number: Optional[str] = None
    driving_license_number: Optional[str] = None


class MemberUpdate(BaseModel):
    """Partial member edit; omitted fields stay untouched."""
    name: Optional[str] = Field(default=None, min_length=2)
    mobile: Optional[str] = Field(default=None, pattern=r"^\d{10}$")
    address: Optional[str] = Field(default=None, min_length=10)
    blood_group: Optional[BloodGroup] = None
    garage_name: Optional[str] = Field(default=None, min_length=3)
    dob: Optional[datetime] = None
    photo_url: Optional[str] = None
    documents: Optional[dict[str, Optional[str]]] = None
    tags: Optional[list[str]] = None
    aadhar_number: Optional[str] = None
    driving_license_number: Optional[str] = None


class Member(BaseModel):
    id: str
    name: str
    mobile: str
    address: str = ""
    blood_group: str = ""
    garage_name: str = ""
    photo_url: str = ""
    email: str = ""
    certificate: Optional[Certificate] = None
    documents: dict[str, str] = Field(default_factory=dict)
    tags: list[str] = Field(default_factory=list)
    status: Optional[MemberStatus] = None
    aadhar_number: Optional[str] = None
    driving_license_number: Optional[str] = None
    dob: Optional[datetime] = None


class MemberResponse(Member):
    derived_status: DerivedStatus


class MemberStatusUpdate(BaseModel):
    status: MemberStatus


class BulkStatusRequest(BaseModel):
    member_ids: list[str] = Field(min_length=1)
    status: MemberStatus


class BulkDeleteRequest(BaseModel):
    member_ids: list[str] = Field(min_length=1)


class MemberPage(BaseModel):
    items: list[MemberResponse]
    next_cursor: Optional[str] = None
    has_more: bool


class ToastResponse(BaseModel):
    title: str
    description: str
    variant: Literal["default", "destructive"] = "default"
    model_config = ConfigDict(from_attributes=True)


class MemberCacheView(BaseModel):
    """Live first page plus any pages fetched on demand."""
    members: list[MemberResponse]
    loading: bool
    has_more: bool
    is_fetching_more: bool
    is_initialized: bool
    processing_ids: list[str]
    toasts: list[ToastResponse] = Field(default_factory=list)


# Update request schemas
class UpdateRequestCreate(BaseModel):
    member_id: str
    field: str
    new_value: Any


class UpdateRequestResponse(BaseModel):
    id: str
    member_id: str
    member_name: str = ""
    member_photo_url: str = ""
    field: str
    old_value: Any = None
    new_value: Any = None
    request_date: datetime
    status: str = "Pending"


# Notification schemas
class NotificationResponse(BaseModel):
    id: str
    member_id: str
    message: str
    type: NotificationType
    created_at: datetime
    is_read: bool = False
    related_id: Optional[str] = None


class BroadcastRequest(BaseModel):
    member_ids: list[str] = Field(min_length=1)
    message: str = Field(min_length=1)


class NotificationCount(BaseModel):
    count: int


# Admin profile schemas
class AdminProfile(BaseModel):
    uid: str
    name: str = ""
    photo_url: str = ""
    phone: Optional[str] = None
    address: Optional[str] = None


class AdminProfileUpdate(BaseModel):
    name: Optional[str] = None
    photo_url: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None


# Layout schemas
class CertificatePosition(BaseModel):
    top: float
    left: float
    line_spacing: Optional[float] = None


class IdCardPosition(BaseModel):
    top: float
    left: float
    width: Optional[float] = None
    height: Optional[float] = None
    font_size: Optional[float] = None
    font_weight: Optional[str] = None
    color: Optional[str] = None
    text_align: Optional[Literal["left", "center", "right"]] = None
    text_transform: Optional[Literal["none", "uppercase", "lowercase", "capitalize"]] = None
    background_color: Optional[str] = None


class LayoutResponse(BaseModel):
    kind: LayoutKind
    positions: dict[str, dict[str, Any]]


class LayoutUpdate(BaseModel):
    positions: dict[str, dict[str, Any]]


# Upload schemas
class DataUriResponse(BaseModel):
    data_uri: str
    content_type: str
    size: int


# Dashboard schemas
class DashboardSummary(BaseModel):
    total_members: int
    active_members: int
    expired_members: int
    pending_requests: int
    blood_group_distribution: dict[str, int]
    status_distribution: dict[str, int]
