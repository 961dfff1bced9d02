from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field


class LedgerTransactionOut(BaseModel):
    seq: int
    type: str
    transactionHash: Optional[str] = None
    blockNumber: Optional[str] = None
    blockchainId: Optional[str] = None
    from_: Optional[str] = Field(default=None, alias="from")
    to: Optional[str] = None
    actor: Optional[str] = None
    timestamp: Optional[str] = None
    prevHash: Optional[str] = None
    entryHash: Optional[str] = None


class LedgerBlockchainIdOut(BaseModel):
    id: str
    txHash: Optional[str] = None
    timestamp: Optional[str] = None


class LedgerEntryOut(BaseModel):
    """
    Same shape whichever store answered the lookup (source says which).
    """
    id: str
    source: str
    subject: str
    propertyId: str
    currentBlockchainId: Optional[str] = None
    isVerified: bool
    owner: Optional[str] = None
    propertyName: Optional[str] = None
    locality: Optional[str] = None
    propertyType: Optional[str] = None
    contentHash: Optional[str] = None
    verifiedBy: Optional[str] = None
    verifiedAt: Optional[str] = None
    lastTransferAt: Optional[str] = None
    transactions: List[LedgerTransactionOut] = Field(default_factory=list)
    blockchainIds: List[LedgerBlockchainIdOut] = Field(default_factory=list)


class ManualSyncRequest(BaseModel):
    propertyId: str = Field(..., min_length=1)
    blockchainId: str = Field(..., min_length=1)
    txHash: str = Field(..., min_length=1)


class LedgerIdResponse(BaseModel):
    propertyId: str
    blockchainId: str


class ChainVerifyResponse(BaseModel):
    key: str
    valid: bool
    transactions: int
