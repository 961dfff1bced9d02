from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


class _Info(BaseModel):
    # free-form client blocks; unknown keys are kept as submitted
    model_config = ConfigDict(extra="allow")


class PartyInfo(_Info):
    email: str = Field(..., min_length=3)
    name: Optional[str] = None
    walletAddress: Optional[str] = None


class PropertyInfo(_Info):
    propertyId: str = Field(..., min_length=1)
    propertyName: Optional[str] = None
    locality: Optional[str] = None
    propertyType: Optional[str] = None
    blockchainId: Optional[str] = None
    transactionHash: Optional[str] = None


class BlockchainInfo(_Info):
    blockchainId: Optional[str] = None
    transactionHash: Optional[str] = None
    blockNumber: Optional[Union[int, str]] = None


class RegistrationSubmission(BaseModel):
    requestId: Optional[str] = None
    ownerInfo: PartyInfo
    propertyInfo: PropertyInfo
    witnessInfo: Dict[str, Any]
    appointmentInfo: Dict[str, Any]
    documents: Dict[str, str] = Field(default_factory=dict)
    priority: Literal["normal", "urgent"] = "normal"

    @field_validator("witnessInfo", "appointmentInfo")
    @classmethod
    def _not_empty(cls, v: Dict[str, Any]) -> Dict[str, Any]:
        if not v:
            raise ValueError("must not be empty")
        return v


class TransferSubmission(BaseModel):
    requestId: Optional[str] = None
    currentOwnerInfo: PartyInfo
    newOwnerInfo: PartyInfo
    propertyInfo: PropertyInfo
    witnessInfo: Dict[str, Any]
    appointmentInfo: Dict[str, Any]
    # checked by the engine so a missing block reports MissingBlockchainData
    blockchainInfo: Optional[BlockchainInfo] = None
    documents: Dict[str, str] = Field(default_factory=dict)
    priority: Literal["normal", "urgent"] = "normal"

    @field_validator("witnessInfo", "appointmentInfo")
    @classmethod
    def _not_empty(cls, v: Dict[str, Any]) -> Dict[str, Any]:
        if not v:
            raise ValueError("must not be empty")
        return v


class DocumentSubmission(BaseModel):
    requestId: Optional[str] = None
    personalInfo: Dict[str, Any]
    documents: Dict[str, str]

    @field_validator("personalInfo")
    @classmethod
    def _personal_info(cls, v: Dict[str, Any]) -> Dict[str, Any]:
        if not v:
            raise ValueError("personal information is required")
        return v

    @field_validator("documents")
    @classmethod
    def _primary_document(cls, v: Dict[str, str]) -> Dict[str, str]:
        if not v.get("document1"):
            raise ValueError("Primary document is required")
        return v


class SubmissionResponse(BaseModel):
    requestId: str
    kind: str
    status: str
    blockchainId: Optional[str] = None
    blockchainSync: Literal["completed", "skipped", "failed"] = "skipped"


class VerificationStepOut(BaseModel):
    step: str
    status: str
    timestamp: Optional[str] = None
    verifier: Optional[str] = None
    contentHash: Optional[str] = None


class RequestSummary(BaseModel):
    id: str
    requestId: str
    kind: str
    status: str
    priority: str
    createdBy: str
    createdAtIso: str
    propertyId: Optional[str] = None
    blockchainId: Optional[str] = None
    transactionHash: Optional[str] = None
    verifiedBy: Optional[str] = None
    rejectedBy: Optional[str] = None
    rejectionReason: Optional[str] = None
    contentHash: Optional[str] = None
    verificationSteps: List[VerificationStepOut] = Field(default_factory=list)
