# Importing the package registers every table on Base.metadata.
from app.models.user import User
from app.models.device_session import DeviceSession
from app.models.invalidated_token import InvalidatedToken
from app.models.review_request import RegistrationRequest, TransferRequest, VerificationRequest
from app.models.ledger import LedgerEntry, LedgerTransaction, LedgerBlockchainId
from app.models.audit_log import AuditLogEntry
from app.models.activity_entry import ActivityEntry
