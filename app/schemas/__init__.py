from app.schemas.requests import RegistrationSubmission, TransferSubmission, DocumentSubmission, SubmissionResponse
from app.schemas.review import LedgerConfirmation, ApproveRequest, RejectRequest, ReviewResponse
from app.schemas.ledger import LedgerEntryOut, LedgerTransactionOut, ManualSyncRequest
from app.schemas.auth import TokenResponse, TokenStatusResponse, MeResponse
from app.schemas.audit import AuditLogEntryResponse, ActivityEntryResponse, DashboardMetrics
