"""Document upload service for draft applications.

Every check runs before anything touches storage. Re-uploading for the same
requirement replaces the previous file and row.
"""

from __future__ import annotations

import hashlib
import logging
import mimetypes
from pathlib import PurePath

from sqlalchemy.ext.asyncio import AsyncSession

from osc_portal.core.config import settings
from osc_portal.core.exceptions import DokumenError, NotFoundError
from osc_portal.core.storage import LocalStorage
from osc_portal.domain.permohonan import Permohonan, PermohonanDokumen, StatusSah
from osc_portal.domain.user import User
from osc_portal.repositories.permohonan import DokumenRepository, PermohonanRepository
from osc_portal.services.audit import AuditService
from osc_portal.services.events import DokumenDimuatNaik, EventDispatcher

logger = logging.getLogger(__name__)


def storage_directory(permohonan_id: str) -> str:
    return f"permohonan/{permohonan_id}/dokumen"


class DokumenService:
    def __init__(
        self,
        session: AsyncSession,
        file_storage: LocalStorage,
        dispatcher: EventDispatcher,
    ):
        self._repo = DokumenRepository(session)
        self._permohonan = PermohonanRepository(session)
        self._storage = file_storage
        self._dispatcher = dispatcher
        self._audit = AuditService(session)

    async def get_dokumen(self, permohonan: Permohonan, dokumen_id: str) -> PermohonanDokumen:
        dokumen = await self._repo.get_by_id(dokumen_id)
        if dokumen is None or dokumen.permohonan_id != permohonan.id:
            raise NotFoundError("Dokumen", dokumen_id)
        return dokumen

    def _validate_file(self, filename: str, content: bytes) -> str:
        allowed = [ext.lower() for ext in settings.allowed_file_extensions]
        extension = PurePath(filename).suffix.lstrip(".").lower()
        if extension not in allowed:
            raise DokumenError.invalid_file_type(extension, allowed)
        if len(content) > settings.max_upload_size:
            raise DokumenError.file_size_exceeded(len(content), settings.max_upload_size)
        if not content:
            raise DokumenError.empty_file()
        return extension

    async def _remove(self, permohonan: Permohonan, dokumen: PermohonanDokumen) -> None:
        await self._storage.delete(dokumen.url_storan)
        if dokumen in permohonan.dokumen:
            permohonan.dokumen.remove(dokumen)
        await self._repo.delete(dokumen)

    async def upload(
        self,
        permohonan: Permohonan,
        keperluan_dokumen_id: int,
        filename: str,
        content_type: str | None,
        content: bytes,
        uploader: User,
    ) -> PermohonanDokumen:
        if not permohonan.is_draf:
            raise DokumenError.permohonan_not_draft()
        extension = self._validate_file(filename, content)

        existing = await self._repo.get_for_requirement(permohonan.id, keperluan_dokumen_id)
        if existing is not None:
            logger.info(
                "Replacing dokumen %s for requirement %s on permohonan %s",
                existing.id, keperluan_dokumen_id, permohonan.id,
            )
            await self._remove(permohonan, existing)

        path = await self._storage.put(storage_directory(permohonan.id), extension, content)
        hash_fail = (
            hashlib.sha256(content).hexdigest() if settings.file_integrity_hash_enabled else None
        )

        dokumen = await self._repo.create(
            permohonan_id=permohonan.id,
            keperluan_dokumen_id=keperluan_dokumen_id,
            nama_fail=filename,
            mime=content_type or mimetypes.guess_type(filename)[0],
            saiz_bait=len(content),
            url_storan=path,
            hash_fail=hash_fail,
            status_sah=StatusSah.BELUM_SAH.value,
            uploaded_by=uploader.id,
        )
        permohonan.dokumen.append(dokumen)

        await self._audit.log_user_action(
            uploader,
            "dokumen_uploaded",
            dokumen,
            {
                "permohonan_id": permohonan.id,
                "keperluan_dokumen_id": keperluan_dokumen_id,
                "nama_fail": filename,
                "saiz_bait": len(content),
                "replaced_existing": existing is not None,
            },
        )
        self._dispatcher.dispatch(DokumenDimuatNaik.from_dokumen(dokumen))
        return dokumen

    async def delete(self, dokumen: PermohonanDokumen, actor: User) -> None:
        permohonan = await self._permohonan.get_by_id(dokumen.permohonan_id)
        if permohonan is None:
            raise NotFoundError("Permohonan", dokumen.permohonan_id)
        if not permohonan.is_draf:
            raise DokumenError.permohonan_not_draft()
        if dokumen.is_validated:
            raise DokumenError.already_validated()

        await self._audit.log_user_action(
            actor,
            "dokumen_deleted",
            dokumen,
            {
                "permohonan_id": dokumen.permohonan_id,
                "keperluan_dokumen_id": dokumen.keperluan_dokumen_id,
                "nama_fail": dokumen.nama_fail,
            },
        )
        await self._remove(permohonan, dokumen)
