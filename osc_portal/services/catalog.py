"""Module 4 catalog client — license types and their document requirements.

Both lookups are cache-aside behind the keyed cache store. When Module 4 is
unreachable or answers non-2xx, non-production environments fall back to a
small static catalog so local development works offline; production raises
ExternalServiceError.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from osc_portal.core.cache import CacheStore, get_cache
from osc_portal.core.config import settings
from osc_portal.core.exceptions import ExternalServiceError

logger = logging.getLogger(__name__)

SERVICE_NAME = "Module 4"

JENIS_LESEN_CACHE_KEY = "module4:jenis_lesen"
KEPERLUAN_DOKUMEN_CACHE_KEY = "module4:keperluan_dokumen:{}"


_FALLBACK_JENIS_LESEN: list[dict[str, Any]] = [
    {
        "id": 1,
        "kod": "SAMPLE-01",
        "nama": "Lesen Perniagaan Makanan",
        "keterangan": "License for food business operations",
        "kategori": "Berisiko",
        "yuran_proses": 150.00,
    },
    {
        "id": 2,
        "kod": "SAMPLE-02",
        "nama": "Lesen Kedai Runcit",
        "keterangan": "License for retail shop operations",
        "kategori": "Tidak Berisiko",
        "yuran_proses": 100.00,
    },
    {
        "id": 3,
        "kod": "SAMPLE-03",
        "nama": "Lesen Perkhidmatan",
        "keterangan": "License for service-based business",
        "kategori": "Tidak Berisiko",
        "yuran_proses": 120.00,
    },
]

_SSM_COPY = ("Salinan Pendaftaran SSM", "Copy of SSM registration certificate")

_FALLBACK_KEPERLUAN: dict[int, list[tuple[int, str, str]]] = {
    1: [
        (1, *_SSM_COPY),
        (2, "Gambar Premis Perniagaan", "Photos of business premises"),
        (3, "Sijil Kesihatan", "Health certificate for food handlers"),
    ],
    2: [
        (4, *_SSM_COPY),
        (5, "Pelan Susun Atur Kedai", "Shop layout plan"),
    ],
    3: [
        (6, *_SSM_COPY),
        (7, "Sijil Kelayakan", "Professional competency certificate"),
    ],
}


def fallback_jenis_lesen() -> list[dict[str, Any]]:
    return [dict(item) for item in _FALLBACK_JENIS_LESEN]


def fallback_keperluan_dokumen(jenis_lesen_id: int) -> list[dict[str, Any]]:
    return [
        {
            "id": req_id,
            "jenis_lesen_id": jenis_lesen_id,
            "nama": nama,
            "keterangan": keterangan,
            "wajib": True,
        }
        for req_id, nama, keterangan in _FALLBACK_KEPERLUAN.get(jenis_lesen_id, [])
    ]


class Module4Client:
    """Read-only client for the Module 4 license catalog.

    Args:
        cache: Keyed TTL store for responses (and fallback data).
        http_client: Optional shared ``httpx.AsyncClient``; a short-lived
            client is opened per request when omitted.
    """

    def __init__(
        self,
        cache: CacheStore,
        http_client: httpx.AsyncClient | None = None,
        base_url: str | None = None,
        cache_ttl: int | None = None,
        timeout: float | None = None,
    ):
        self._cache = cache
        self._http = http_client
        self.base_url = (base_url or settings.module4_base_url).rstrip("/")
        self.cache_ttl = cache_ttl if cache_ttl is not None else settings.module4_cache_ttl
        self.timeout = timeout if timeout is not None else settings.module4_timeout

    async def _get_data(self, path: str) -> list[dict[str, Any]]:
        url = f"{self.base_url}{path}"
        if self._http is not None:
            response = await self._http.get(url, timeout=self.timeout)
        else:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(url)

        if not response.is_success:
            raise ExternalServiceError(
                SERVICE_NAME, f"Failed to fetch {path}: HTTP {response.status_code}"
            )
        return response.json().get("data", [])

    async def _fetch_or_fallback(self, path: str, fallback, **log_extra: Any):
        try:
            return await self._get_data(path)
        except httpx.TransportError as exc:
            logger.warning(
                "Module 4 connection failed for %s: %s (base_url=%s) %s",
                path, exc, self.base_url, log_extra or "",
            )
            if settings.is_production:
                raise ExternalServiceError(SERVICE_NAME, "Connection failed") from exc
        except Exception as exc:
            logger.error(
                "Module 4 error for %s: %s (base_url=%s) %s",
                path, exc, self.base_url, log_extra or "",
            )
            if settings.is_production:
                if isinstance(exc, ExternalServiceError):
                    raise
                raise ExternalServiceError(SERVICE_NAME, "Request failed") from exc

        logger.info("Using fallback catalog data for %s (%s mode)", path, settings.app_env)
        return fallback()

    async def get_jenis_lesen(self) -> list[dict[str, Any]]:
        """All license types. Cached for ``cache_ttl`` seconds."""
        return await self._cache.remember(
            JENIS_LESEN_CACHE_KEY,
            self.cache_ttl,
            lambda: self._fetch_or_fallback("/jenis-lesen", fallback_jenis_lesen),
        )

    async def get_keperluan_dokumen(self, jenis_lesen_id: int) -> list[dict[str, Any]]:
        """Document requirements of one license type, cached per type id."""
        return await self._cache.remember(
            KEPERLUAN_DOKUMEN_CACHE_KEY.format(jenis_lesen_id),
            self.cache_ttl,
            lambda: self._fetch_or_fallback(
                f"/jenis-lesen/{jenis_lesen_id}/keperluan-dokumen",
                lambda: fallback_keperluan_dokumen(jenis_lesen_id),
                jenis_lesen_id=jenis_lesen_id,
            ),
        )

    async def find_jenis_lesen(self, jenis_lesen_id: int) -> dict[str, Any] | None:
        for item in await self.get_jenis_lesen():
            if item.get("id") == jenis_lesen_id:
                return item
        return None

    async def jenis_lesen_exists(self, jenis_lesen_id: int) -> bool:
        try:
            return await self.find_jenis_lesen(jenis_lesen_id) is not None
        except ExternalServiceError as exc:
            logger.error("Failed to validate jenis_lesen_id %s: %s", jenis_lesen_id, exc.message)
            return False


def get_module4_client() -> Module4Client:
    """FastAPI dependency."""
    return Module4Client(get_cache())
