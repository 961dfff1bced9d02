from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class CitizenLoginRequest(BaseModel):
    email: str = Field(..., min_length=3)
    name: Optional[str] = None
    providerUid: Optional[str] = Field(default=None, description="uid from the upstream identity provider")


class GovernmentLoginRequest(BaseModel):
    email: str = Field(..., min_length=3)
    password: str = Field(..., min_length=1)


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    issued_for: str = "citizen"


class DeviceInfo(BaseModel):
    model_config = {"extra": "allow"}

    deviceId: str = Field(..., min_length=1)
    platform: Optional[str] = None


class SyncRequest(BaseModel):
    deviceInfo: DeviceInfo


class RefreshRequest(BaseModel):
    deviceInfo: DeviceInfo


class InvalidateRequest(BaseModel):
    deviceId: Optional[str] = None


class TokenStatusResponse(BaseModel):
    valid: bool
    message: str
    identity: Optional[str] = None
    issuedFor: Optional[str] = None
    expiresAtIso: Optional[str] = None


class MeResponse(BaseModel):
    identity: str
    displayName: str
    role: str
    issuedFor: str
    expiresAtIso: str
    session: Optional[Dict[str, Any]] = None
