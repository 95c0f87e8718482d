"""initial schema

Revision ID: 0001
Revises:
Create Date: 2026-10-17 12:00:00
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("ic_no", sa.String(12), nullable=False),
        sa.Column("role", sa.String(20), nullable=False),
        sa.Column("status_verified_person", sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_ic_no", "users", ["ic_no"], unique=True)

    op.create_table(
        "access_tokens",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("jti", sa.String(64), nullable=False),
        sa.Column("user_id", sa.String(36), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("revoked_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_access_tokens_jti", "access_tokens", ["jti"], unique=True)
    op.create_index("ix_access_tokens_user_id", "access_tokens", ["user_id"])

    op.create_table(
        "companies",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("ssm_no", sa.String(50), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column(
            "owner_user_id", sa.String(36), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True
        ),
        *_timestamps(),
    )
    op.create_index("ix_companies_ssm_no", "companies", ["ssm_no"], unique=True)
    op.create_index("ix_companies_status", "companies", ["status"])
    op.create_index("ix_companies_owner_user_id", "companies", ["owner_user_id"])

    op.create_table(
        "permohonan",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("user_id", sa.String(36), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column(
            "company_id", sa.String(36), sa.ForeignKey("companies.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("jenis_lesen_id", sa.Integer(), nullable=False),
        sa.Column("butiran_operasi", sa.JSON(), nullable=True),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("tarikh_serahan", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_permohonan_user_id", "permohonan", ["user_id"])
    op.create_index("ix_permohonan_company_id", "permohonan", ["company_id"])
    op.create_index("ix_permohonan_jenis_lesen_id", "permohonan", ["jenis_lesen_id"])
    op.create_index("ix_permohonan_status", "permohonan", ["status"])
    op.create_index("ix_permohonan_tarikh_serahan", "permohonan", ["tarikh_serahan"])

    op.create_table(
        "permohonan_dokumen",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "permohonan_id", sa.String(36), sa.ForeignKey("permohonan.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("keperluan_dokumen_id", sa.Integer(), nullable=False),
        sa.Column("nama_fail", sa.String(255), nullable=False),
        sa.Column("mime", sa.String(100), nullable=True),
        sa.Column("saiz_bait", sa.Integer(), nullable=False),
        sa.Column("url_storan", sa.String(500), nullable=False),
        sa.Column("hash_fail", sa.String(64), nullable=True),
        sa.Column("status_sah", sa.String(20), nullable=False),
        sa.Column(
            "uploaded_by", sa.String(36), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True
        ),
        *_timestamps(),
        sa.UniqueConstraint("permohonan_id", "keperluan_dokumen_id", name="uq_permohonan_keperluan"),
    )
    op.create_index("ix_permohonan_dokumen_permohonan_id", "permohonan_dokumen", ["permohonan_id"])

    op.create_table(
        "audit_logs",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("actor_id", sa.String(36), nullable=True),
        sa.Column("action", sa.String(100), nullable=False),
        sa.Column("entity_type", sa.String(100), nullable=False),
        sa.Column("entity_id", sa.String(36), nullable=True),
        sa.Column("meta", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    for column in ("actor_id", "action", "entity_type", "entity_id", "created_at"):
        op.create_index(f"ix_audit_logs_{column}", "audit_logs", [column])


def downgrade() -> None:
    op.drop_table("audit_logs")
    op.drop_table("permohonan_dokumen")
    op.drop_table("permohonan")
    op.drop_table("companies")
    op.drop_table("access_tokens")
    op.drop_table("users")
