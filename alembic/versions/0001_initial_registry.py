"""initial registry schema

Revision ID: 0001_initial_registry
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = "0001_initial_registry"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

JSONB = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")


def _review_columns():
    return [
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column("request_id", sa.String(64), nullable=False, unique=True),
        sa.Column("status", sa.String(16), nullable=False, server_default="pending"),
        sa.Column("priority", sa.String(16), nullable=False, server_default="normal"),
        sa.Column("documents_json", JSONB, nullable=False),
        sa.Column("created_by", sa.String(256), nullable=False),
        sa.Column("ip_address", sa.String(64), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("last_modified", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("verified_by", sa.String(256), nullable=True),
        sa.Column("verified_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("verification_notes", sa.Text(), nullable=True),
        sa.Column("rejected_by", sa.String(256), nullable=True),
        sa.Column("rejected_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("rejection_reason", sa.Text(), nullable=True),
    ]


def upgrade():
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column("email", sa.String(256), nullable=False, unique=True),
        sa.Column("name", sa.String(256), nullable=False),
        sa.Column("password_hash", sa.String(256), nullable=True),
        sa.Column("is_government", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )

    op.create_table(
        "device_sessions",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column("user_id", sa.String(256), nullable=False),
        sa.Column("device_id", sa.String(128), nullable=False),
        sa.Column("platform", sa.String(256), nullable=False, server_default="unknown"),
        sa.Column("device_info_json", JSONB, nullable=False),
        sa.Column("token_digest", sa.String(64), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("last_active", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("last_sync", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_refresh", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("user_id", "device_id", name="uq_device_session_user_device"),
    )

    op.create_table(
        "invalidated_tokens",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column("token_digest", sa.String(64), nullable=False),
        sa.Column("user_id", sa.String(256), nullable=True),
        sa.Column("device_id", sa.String(128), nullable=True),
        sa.Column("reason", sa.String(16), nullable=False),
        sa.Column("invalidated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_invalidated_tokens_digest", "invalidated_tokens", ["token_digest"])
    op.create_index("ix_invalidated_tokens_user", "invalidated_tokens", ["user_id"])

    # ─────────── review requests ───────────
    op.create_table(
        "registration_requests",
        *_review_columns(),
        sa.Column("property_id", sa.String(128), nullable=False),
        sa.Column("owner_info_json", JSONB, nullable=False),
        sa.Column("property_info_json", JSONB, nullable=False),
        sa.Column("witness_info_json", JSONB, nullable=False),
        sa.Column("appointment_info_json", JSONB, nullable=False),
        sa.Column("blockchain_id", sa.String(128), nullable=True),
        sa.Column("transaction_hash", sa.String(128), nullable=True),
        sa.Column("blockchain_info_json", JSONB, nullable=True),
    )
    op.create_index("ix_registration_requests_property", "registration_requests", ["property_id"])
    op.create_index("ix_registration_requests_status", "registration_requests", ["status"])

    op.create_table(
        "transfer_requests",
        *_review_columns(),
        sa.Column("property_id", sa.String(128), nullable=False),
        sa.Column("current_owner_info_json", JSONB, nullable=False),
        sa.Column("new_owner_info_json", JSONB, nullable=False),
        sa.Column("property_info_json", JSONB, nullable=False),
        sa.Column("witness_info_json", JSONB, nullable=False),
        sa.Column("appointment_info_json", JSONB, nullable=False),
        sa.Column("blockchain_id", sa.String(128), nullable=False),
        sa.Column("transaction_hash", sa.String(128), nullable=False),
        sa.Column("blockchain_info_json", JSONB, nullable=False),
    )
    op.create_index("ix_transfer_requests_property", "transfer_requests", ["property_id"])
    op.create_index("ix_transfer_requests_status", "transfer_requests", ["status"])
    op.create_index("ix_transfer_requests_tx_hash", "transfer_requests", ["transaction_hash"])

    op.create_table(
        "verification_requests",
        *_review_columns(),
        sa.Column("personal_info_json", JSONB, nullable=False),
        sa.Column("verification_steps_json", JSONB, nullable=False),
        sa.Column("blockchain_id", sa.String(128), nullable=True),
        sa.Column("transaction_hash", sa.String(128), nullable=True),
        sa.Column("content_hash", sa.String(128), nullable=True),
        sa.Column("is_verified", sa.Boolean(), nullable=False, server_default=sa.false()),
    )
    op.create_index("ix_verification_requests_status", "verification_requests", ["status"])
    op.create_index("ix_verification_requests_blockchain", "verification_requests", ["blockchain_id"])
    op.create_index("ix_verification_requests_created_by", "verification_requests", ["created_by"])

    # ─────────── ledger mirror ───────────
    op.create_table(
        "ledger_entries",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column("subject", sa.String(16), nullable=False),
        sa.Column("entity_key", sa.String(128), nullable=False, unique=True),
        sa.Column("current_blockchain_id", sa.String(128), nullable=True),
        sa.Column("owner", sa.String(256), nullable=True),
        sa.Column("is_verified", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("property_name", sa.String(256), nullable=True),
        sa.Column("locality", sa.String(256), nullable=True),
        sa.Column("property_type", sa.String(64), nullable=True),
        sa.Column("content_hash", sa.String(128), nullable=True),
        sa.Column("verified_by", sa.String(256), nullable=True),
        sa.Column("verified_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_transfer_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("last_modified", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_ledger_entries_current_id", "ledger_entries", ["current_blockchain_id"])
    op.create_index("ix_ledger_entries_owner", "ledger_entries", ["owner", "is_verified"])

    op.create_table(
        "ledger_transactions",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column("entry_id", sa.Uuid(as_uuid=True), sa.ForeignKey("ledger_entries.id", ondelete="CASCADE"), nullable=False),
        sa.Column("seq", sa.Integer(), nullable=False),
        sa.Column("event_type", sa.String(32), nullable=False),
        sa.Column("transaction_hash", sa.String(128), nullable=True),
        sa.Column("block_number", sa.BigInteger(), nullable=True),
        sa.Column("blockchain_id", sa.String(128), nullable=True),
        sa.Column("from_identity", sa.String(256), nullable=True),
        sa.Column("to_identity", sa.String(256), nullable=True),
        sa.Column("actor", sa.String(256), nullable=True),
        sa.Column("occurred_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("prev_hash", sa.String(128), nullable=False),
        sa.Column("entry_hash", sa.String(128), nullable=False),
        sa.Column("payload_json", JSONB, nullable=False),
        sa.UniqueConstraint("entry_id", "seq", name="uq_ledger_transaction_seq"),
    )
    op.create_index("ix_ledger_transactions_hash", "ledger_transactions", ["transaction_hash"])

    op.create_table(
        "ledger_blockchain_ids",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column("entry_id", sa.Uuid(as_uuid=True), sa.ForeignKey("ledger_entries.id", ondelete="CASCADE"), nullable=False),
        sa.Column("seq", sa.Integer(), nullable=False),
        sa.Column("blockchain_id", sa.String(128), nullable=False),
        sa.Column("tx_hash", sa.String(128), nullable=True),
        sa.Column("assigned_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("entry_id", "seq", name="uq_ledger_blockchain_id_seq"),
    )
    op.create_index("ix_ledger_blockchain_ids_value", "ledger_blockchain_ids", ["blockchain_id"])
    op.create_index("ix_ledger_blockchain_ids_tx", "ledger_blockchain_ids", ["tx_hash"])

    # ─────────── audit / activity ───────────
    op.create_table(
        "audit_log_entries",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("request_id", sa.String(128), nullable=True),
        sa.Column("route", sa.String(256), nullable=True),
        sa.Column("ip_address", sa.String(64), nullable=True),
        sa.Column("actor", sa.String(256), nullable=False),
        sa.Column("actor_role", sa.String(32), nullable=False),
        sa.Column("action", sa.String(96), nullable=False),
        sa.Column("request_kind", sa.String(32), nullable=True),
        sa.Column("target_ref", sa.String(128), nullable=True),
        sa.Column("payload_hash", sa.String(128), nullable=False),
        sa.Column("details_json", JSONB, nullable=False),
    )
    op.create_index("ix_audit_action", "audit_log_entries", ["action"])
    op.create_index("ix_audit_target", "audit_log_entries", ["target_ref"])
    op.create_index("ix_audit_created", "audit_log_entries", ["created_at"])
    op.create_index("ix_audit_request_id", "audit_log_entries", ["request_id"])

    op.create_table(
        "activity_entries",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column("activity_type", sa.String(64), nullable=False),
        sa.Column("status", sa.String(16), nullable=False),
        sa.Column("actor", sa.String(256), nullable=False),
        sa.Column("actor_role", sa.String(32), nullable=False),
        sa.Column("subject_json", JSONB, nullable=False),
        sa.Column("transaction_json", JSONB, nullable=False),
        sa.Column("details_json", JSONB, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_activity_created", "activity_entries", ["created_at"])


def downgrade():
    op.drop_table("activity_entries")
    op.drop_table("audit_log_entries")
    op.drop_table("ledger_blockchain_ids")
    op.drop_table("ledger_transactions")
    op.drop_table("ledger_entries")
    op.drop_table("verification_requests")
    op.drop_table("transfer_requests")
    op.drop_table("registration_requests")
    op.drop_table("invalidated_tokens")
    op.drop_table("device_sessions")
    op.drop_table("users")
