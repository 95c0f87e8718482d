"""Domain package — all ORM models are imported here so Alembic autogenerate detects them.

Folder intent:
  user.py        — portal users (applicants, administrators)
  token.py       — revocable bearer tokens
  company.py     — SSM-registered companies and their owner
  permohonan.py  — license applications and uploaded documents
  audit.py       — append-only audit log (purged only by retention cleanup)
  mixins.py      — shared UUID / timestamp / soft-delete columns
"""

from osc_portal.domain.audit import AuditLog
from osc_portal.domain.company import Company, CompanyStatus
from osc_portal.domain.permohonan import (
    Permohonan,
    PermohonanDokumen,
    PermohonanStatus,
    StatusSah,
)
from osc_portal.domain.token import AccessToken
from osc_portal.domain.user import User, UserRole

__all__ = [
    "AccessToken",
    "AuditLog",
    "Company",
    "CompanyStatus",
    "Permohonan",
    "PermohonanDokumen",
    "PermohonanStatus",
    "StatusSah",
    "User",
    "UserRole",
]
