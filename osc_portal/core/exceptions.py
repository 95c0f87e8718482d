"""Application-level exceptions and FastAPI exception handlers."""


from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

class AppException(Exception):
    """Base application exception."""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        code: str = "INTERNAL_ERROR",
        details: list[str] | None = None,
    ):
        self.message = message
        self.status_code = status_code
        self.code = code
        self.details = details or []
        super().__init__(message)

class NotFoundError(AppException):
    def __init__(self, entity: str, entity_id: str | None = None):
        msg = f"{entity} not found" if not entity_id else f"{entity} '{entity_id}' not found"
        super().__init__(msg, status_code=404, code="NOT_FOUND")

class ForbiddenError(AppException):
    def __init__(self, message: str = "Access denied", code: str = "FORBIDDEN"):
        super().__init__(message, status_code=403, code=code)

class UnauthorizedError(AppException):
    def __init__(self, message: str = "Unauthenticated."):
        super().__init__(message, status_code=401, code="UNAUTHORIZED")

class ConflictError(AppException):
    def __init__(self, message: str):
        super().__init__(message, status_code=409, code="CONFLICT")

class ValidationError(AppException):
    def __init__(self, message: str, code: str = "VALIDATION_ERROR"):
        super().__init__(message, status_code=422, code=code)

class ExternalServiceError(AppException):
    """Raised when a downstream module cannot be reached or answers non-2xx."""

    def __init__(self, service_name: str, message: str | None = None):
        self.service_name = service_name
        super().__init__(
            message or f"External service '{service_name}' is temporarily unavailable",
            status_code=503,
            code="EXTERNAL_SERVICE_UNAVAILABLE",
        )

# ---------------------------------------------------------------------------
# Domain errors
# ---------------------------------------------------------------------------

class PermohonanError(AppException):
    """Business-rule violations on license applications."""

    @classmethod
    def not_draft(cls) -> "PermohonanError":
        return cls(
            "Application must be in draft status for this operation.",
            status_code=422,
            code="PERMOHONAN_NOT_DRAFT",
        )

    @classmethod
    def incomplete(cls, errors: list[str]) -> "PermohonanError":
        return cls(
            "Application is incomplete and cannot be submitted.",
            status_code=422,
            code="PERMOHONAN_INCOMPLETE",
            details=errors,
        )

    @classmethod
    def company_not_owned(cls) -> "PermohonanError":
        return cls(
            "Company does not belong to authenticated user.",
            status_code=403,
            code="COMPANY_NOT_OWNED",
        )

    @classmethod
    def identity_not_verified(cls) -> "PermohonanError":
        return cls(
            "User identity must be verified before submitting applications.",
            status_code=403,
            code="IDENTITY_NOT_VERIFIED",
        )

    @classmethod
    def invalid_jenis_lesen(cls, jenis_lesen_id: int) -> "PermohonanError":
        return cls(
            f"Invalid jenis_lesen_id: {jenis_lesen_id}. License type does not exist.",
            status_code=422,
            code="INVALID_JENIS_LESEN",
        )

class DokumenError(AppException):
    """Upload and deletion rule violations on application documents."""

    @classmethod
    def invalid_file_type(cls, extension: str, allowed: list[str]) -> "DokumenError":
        shown = ", ".join(ext.upper() for ext in allowed)
        return cls(
            f"File type '{extension or 'unknown'}' not allowed. Allowed types: {shown}",
            status_code=422,
            code="INVALID_FILE_TYPE",
        )

    @classmethod
    def file_size_exceeded(cls, actual_size: int, max_size: int) -> "DokumenError":
        actual_mb = round(actual_size / 1024 / 1024, 2)
        max_mb = round(max_size / 1024 / 1024, 2)
        return cls(
            f"File size ({actual_mb} MB) exceeds maximum allowed size ({max_mb} MB).",
            status_code=422,
            code="FILE_SIZE_EXCEEDED",
        )

    @classmethod
    def empty_file(cls) -> "DokumenError":
        return cls("Uploaded file is empty.", status_code=422, code="EMPTY_FILE")

    @classmethod
    def already_validated(cls) -> "DokumenError":
        return cls(
            "Cannot delete a validated document.",
            status_code=422,
            code="DOCUMENT_ALREADY_VALIDATED",
        )

    @classmethod
    def permohonan_not_draft(cls) -> "DokumenError":
        return cls(
            "Documents can only be changed when application is in draft status.",
            status_code=422,
            code="PERMOHONAN_NOT_DRAFT",
        )

class CompanyError(AppException):
    """Company verification / ownership rule violations."""

    @classmethod
    def already_owned(cls) -> "CompanyError":
        return cls(
            "Company already has an owner. Only administrators can reassign ownership.",
            status_code=403,
            code="COMPANY_ALREADY_OWNED",
        )

    @classmethod
    def unknown_status(cls) -> "CompanyError":
        return cls(
            "Cannot link to a company with unknown status. Please verify the company first.",
            status_code=422,
            code="COMPANY_STATUS_UNKNOWN",
        )

# ---------------------------------------------------------------------------
# FastAPI exception handlers
# ---------------------------------------------------------------------------

def _error_body(code: str, message: str, details: list[str] | None = None) -> dict:
    body: dict = {"error": {"code": code, "message": message}}
    if details:
        body["error"]["details"] = details
    return body

def register_exception_handlers(app: FastAPI) -> None:
    """Attach all custom exception handlers to the FastAPI app."""

    @app.exception_handler(AppException)
    async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
        headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(exc.code, exc.message, exc.details),
            headers=headers,
        )

    @app.exception_handler(404)
    async def not_found_handler(request: Request, exc: Exception) -> JSONResponse:
        return JSONResponse(
            status_code=404,
            content=_error_body("NOT_FOUND", "Resource not found"),
        )

    @app.exception_handler(500)
    async def internal_error_handler(request: Request, exc: Exception) -> JSONResponse:
        return JSONResponse(
            status_code=500,
            content=_error_body("INTERNAL_ERROR", "An unexpected error occurred"),
        )
