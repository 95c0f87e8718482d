"""Permohonan (license application) workflow.

Lifecycle: Draf -> Diserahkan, or Draf -> Dibatalkan. Only drafts are
mutable. Submission requires a complete application, checked against the
document requirements published by the Module 4 catalog.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from osc_portal.core.exceptions import (
    ExternalServiceError,
    ForbiddenError,
    NotFoundError,
    PermohonanError,
    ValidationError,
)
from osc_portal.core.pagination import PaginationParams
from osc_portal.domain.permohonan import Permohonan, PermohonanStatus
from osc_portal.domain.user import User
from osc_portal.repositories.company import CompanyRepository
from osc_portal.repositories.permohonan import DokumenRepository, PermohonanRepository
from osc_portal.services.audit import AuditService
from osc_portal.services.catalog import Module4Client
from osc_portal.services.events import EventDispatcher, PermohonanDiserahkan

logger = logging.getLogger(__name__)

CANCEL_REASON_MAX_LENGTH = 500

# (field, message) pairs checked inside butiran_operasi.alamat_premis
_ALAMAT_FIELDS = (
    ("alamat_1", "Address line 1 (alamat_1) is required"),
    ("bandar", "City (bandar) is required"),
    ("poskod", "Postal code (poskod) is required"),
    ("negeri", "State (negeri) is required"),
)

DEFAULT_JENIS_LESEN_NAMA = "Unknown"
DEFAULT_KATEGORI = "Tidak Berisiko"


class PermohonanService:
    def __init__(
        self,
        session: AsyncSession,
        catalog: Module4Client,
        dispatcher: EventDispatcher,
    ):
        self._repo = PermohonanRepository(session)
        self._companies = CompanyRepository(session)
        self._dokumen = DokumenRepository(session)
        self._catalog = catalog
        self._dispatcher = dispatcher
        self._audit = AuditService(session)

    # ------------------------------------------------------------------
    # Lookup / ownership
    # ------------------------------------------------------------------

    async def get_permohonan(self, permohonan_id: str) -> Permohonan:
        permohonan = await self._repo.get_by_id(permohonan_id)
        if permohonan is None:
            raise NotFoundError("Permohonan", permohonan_id)
        return permohonan

    async def get_owned(self, permohonan_id: str, user: User) -> Permohonan:
        """Load an application the user owns (404 if missing, 403 otherwise)."""
        permohonan = await self.get_permohonan(permohonan_id)
        if permohonan.user_id != user.id:
            raise ForbiddenError("This action is unauthorized.")
        return permohonan

    async def list_permohonan(
        self,
        user: User,
        pagination: PaginationParams,
        status: str | None = None,
        jenis_lesen_id: int | None = None,
        tarikh_dari: datetime | None = None,
        tarikh_hingga: datetime | None = None,
    ) -> tuple[list[Permohonan], int]:
        return await self._repo.list_for_user(
            user.id,
            offset=pagination.offset,
            limit=pagination.limit,
            status=status,
            jenis_lesen_id=jenis_lesen_id,
            tarikh_dari=tarikh_dari,
            tarikh_hingga=tarikh_hingga,
        )

    async def catalog_details(self, permohonan: list[Permohonan]) -> dict[int, dict[str, Any]]:
        """Catalog fields per license type id, with defaults for unknown types."""
        try:
            catalog = {item["id"]: item for item in await self._catalog.get_jenis_lesen()}
        except ExternalServiceError as exc:
            logger.warning("License catalog unavailable for enrichment: %s", exc.message)
            catalog = {}

        details: dict[int, dict[str, Any]] = {}
        for p in permohonan:
            entry = catalog.get(p.jenis_lesen_id, {})
            details[p.jenis_lesen_id] = {
                "jenis_lesen_nama": entry.get("nama", DEFAULT_JENIS_LESEN_NAMA),
                "kategori": entry.get("kategori", DEFAULT_KATEGORI),
                "yuran_proses": entry.get("yuran_proses"),
            }
        return details

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def _ensure_company_owned(self, company_id: str, user: User) -> None:
        company = await self._companies.get_by_id(company_id)
        if company is None or company.owner_user_id != user.id:
            raise PermohonanError.company_not_owned()

    async def _ensure_jenis_lesen(self, jenis_lesen_id: int) -> None:
        if not await self._catalog.jenis_lesen_exists(jenis_lesen_id):
            raise PermohonanError.invalid_jenis_lesen(jenis_lesen_id)

    async def create_draft(
        self,
        user: User,
        company_id: str,
        jenis_lesen_id: int,
        butiran_operasi: dict[str, Any] | None = None,
    ) -> Permohonan:
        await self._ensure_company_owned(company_id, user)
        await self._ensure_jenis_lesen(jenis_lesen_id)

        created = await self._repo.create(
            user_id=user.id,
            company_id=company_id,
            jenis_lesen_id=jenis_lesen_id,
            status=PermohonanStatus.DRAF.value,
            butiran_operasi=butiran_operasi,
        )
        await self._audit.log_user_action(
            user,
            "permohonan_created",
            created,
            {"jenis_lesen_id": jenis_lesen_id, "company_id": company_id},
        )
        logger.info("Draft application %s created by user %s", created.id, user.id)
        return await self._repo.get_by_id(created.id, refresh=True)  # type: ignore[return-value]

    async def update_draft(
        self, permohonan: Permohonan, user: User, changes: dict[str, Any]
    ) -> Permohonan:
        """Apply non-null ``company_id`` / ``jenis_lesen_id`` / ``butiran_operasi`` changes."""
        if not permohonan.is_draf:
            raise PermohonanError.not_draft()

        company_id = changes.get("company_id")
        if company_id is not None and company_id != permohonan.company_id:
            await self._ensure_company_owned(company_id, user)

        jenis_lesen_id = changes.get("jenis_lesen_id")
        if jenis_lesen_id is not None and jenis_lesen_id != permohonan.jenis_lesen_id:
            await self._ensure_jenis_lesen(jenis_lesen_id)

        values = {
            field: changes[field]
            for field in ("company_id", "jenis_lesen_id", "butiran_operasi")
            if changes.get(field) is not None
        }
        original = {
            "company_id": permohonan.company_id,
            "jenis_lesen_id": permohonan.jenis_lesen_id,
            "butiran_operasi": permohonan.butiran_operasi,
        }
        if not values:
            return permohonan

        updated = await self._repo.update(permohonan.id, **values)
        await self._audit.log_user_action(
            user,
            "permohonan_updated",
            updated,
            {
                "original": original,
                "updated": {
                    "company_id": updated.company_id,
                    "jenis_lesen_id": updated.jenis_lesen_id,
                    "butiran_operasi": updated.butiran_operasi,
                },
            },
        )
        logger.info("Draft application %s updated by user %s", permohonan.id, user.id)
        return updated  # type: ignore[return-value]

    async def validate_completeness(self, permohonan: Permohonan) -> list[str]:
        """Human-readable reasons the application cannot be submitted (empty if complete)."""
        errors: list[str] = []

        if not permohonan.user_id:
            errors.append("User ID is required")
        if not permohonan.company_id:
            errors.append("Company ID is required")
        if not permohonan.jenis_lesen_id:
            errors.append("License type (jenis_lesen_id) is required")

        butiran = permohonan.butiran_operasi
        if not butiran:
            errors.append("Business operation details (butiran_operasi) are required")
        else:
            alamat = butiran.get("alamat_premis") if isinstance(butiran, dict) else None
            if not alamat or not isinstance(alamat, dict):
                errors.append(
                    "Premise address (alamat_premis) is required in business operation details"
                )
            else:
                errors.extend(msg for key, msg in _ALAMAT_FIELDS if not alamat.get(key))

        try:
            keperluan = await self._catalog.get_keperluan_dokumen(permohonan.jenis_lesen_id)
            uploaded = await self._dokumen.uploaded_requirement_ids(permohonan.id)
            for item in keperluan:
                if item.get("wajib") and item["id"] not in uploaded:
                    errors.append(f"Required document missing: {item['nama']} (ID: {item['id']})")
        except Exception as exc:
            logger.error(
                "Failed to validate document completeness for permohonan %s: %s",
                permohonan.id, exc,
            )
            errors.append("Unable to verify document requirements. Please try again later.")

        return errors

    async def submit(self, permohonan: Permohonan, user: User) -> Permohonan:
        if not permohonan.is_draf:
            raise PermohonanError.not_draft()
        if not user.status_verified_person:
            raise PermohonanError.identity_not_verified()

        errors = await self.validate_completeness(permohonan)
        if errors:
            raise PermohonanError.incomplete(errors)

        submitted = await self._repo.update(
            permohonan.id,
            status=PermohonanStatus.DISERAHKAN.value,
            tarikh_serahan=datetime.now(timezone.utc),
        )
        await self._audit.log_user_action(
            user,
            "permohonan_submitted",
            submitted,
            {"tarikh_serahan": submitted.tarikh_serahan.isoformat()},
        )
        self._dispatcher.dispatch(PermohonanDiserahkan.from_permohonan(submitted))
        logger.info("Application %s submitted by user %s", permohonan.id, user.id)
        return submitted  # type: ignore[return-value]

    async def cancel(self, permohonan: Permohonan, user: User, reason: str) -> Permohonan:
        if not permohonan.is_draf:
            raise PermohonanError.not_draft()
        reason = (reason or "").strip()
        if not reason or len(reason) > CANCEL_REASON_MAX_LENGTH:
            raise ValidationError(
                f"A cancellation reason of 1 to {CANCEL_REASON_MAX_LENGTH} characters is required."
            )

        cancelled = await self._repo.update(
            permohonan.id, status=PermohonanStatus.DIBATALKAN.value
        )
        await self._audit.log_user_action(
            user, "permohonan_cancelled", cancelled, {"reason": reason}
        )
        logger.info("Application %s cancelled by user %s", permohonan.id, user.id)
        return cancelled  # type: ignore[return-value]
