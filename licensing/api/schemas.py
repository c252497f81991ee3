"""
Response models shared by the API routers.
"""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict

from licensing.domain.value_objects import AppRole, ApplicationStatus, LicenseStatus


class ApplicationResponse(BaseModel):
    """Full application row (owner or admin only)"""
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    license_type: str
    business_name: str
    registration_number: str
    business_address: str
    contact_person: str
    contact_email: str
    phone_number: str
    business_type: str
    business_description: str
    status: ApplicationStatus
    submitted_at: Optional[datetime] = None
    reviewed_at: Optional[datetime] = None
    reviewed_by: Optional[str] = None
    rejection_reason: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class LicenseResponse(BaseModel):
    """Full license row (owner or admin only)"""
    model_config = ConfigDict(from_attributes=True)

    id: str
    application_id: str
    user_id: str
    license_number: str
    license_type: str
    business_name: str
    issue_date: datetime
    expiry_date: datetime
    status: LicenseStatus
    integrity_hash: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ProfileResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    business_name: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class RoleAssignmentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    role: AppRole
    created_at: Optional[datetime] = None
