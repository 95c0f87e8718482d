"""Module feature flags. A disabled module's routes answer 404."""

from fastapi import Depends

from osc_portal.core.config import settings
from osc_portal.core.exceptions import NotFoundError

_FLAGS = {
    "MODULE_M01": "module_m01",
    "MODULE_M02": "module_m02",
}


def feature_enabled(flag: str) -> bool:
    return bool(getattr(settings, _FLAGS[flag]))


def require_feature(flag: str):
    """Router dependency: `APIRouter(dependencies=[require_feature("MODULE_M02")])`."""
    if flag not in _FLAGS:
        raise ValueError(f"Unknown feature flag: {flag}")

    async def _check() -> None:
        # Evaluated per request
        if not feature_enabled(flag):
            raise NotFoundError("Resource")

    return Depends(_check)


def enabled_modules() -> dict[str, bool]:
    return {flag: feature_enabled(flag) for flag in _FLAGS}
