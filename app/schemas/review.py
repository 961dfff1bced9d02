from __future__ import annotations

from typing import Optional, Union

from pydantic import BaseModel, Field

from app.core.types import RequestKind


class LedgerConfirmation(BaseModel):
    """Reviewer's on-chain confirmation for the approval transaction."""
    transactionHash: Optional[str] = None
    blockNumber: Optional[Union[int, str]] = None
    currentBlockchainId: Optional[str] = None


class ApproveRequest(BaseModel):
    kind: RequestKind
    requestId: str = Field(..., min_length=1)
    blockchainTransaction: Optional[LedgerConfirmation] = None
    verificationNotes: Optional[str] = None


class RejectRequest(BaseModel):
    kind: RequestKind
    requestId: str = Field(..., min_length=1)
    notes: Optional[str] = None


class ReviewResponse(BaseModel):
    requestId: str
    kind: RequestKind
    status: str
    contentHash: Optional[str] = None
    currentBlockchainId: Optional[str] = None
