"""Auth, profile and identity verification schemas."""


from datetime import datetime

from pydantic import EmailStr, Field, model_validator

from osc_portal.schemas.common import CamelModel, ICNumber


class RegisterRequest(CamelModel):
    name: str = Field(min_length=1, max_length=255)
    email: EmailStr
    password: str = Field(min_length=8)
    password_confirmation: str
    ic_no: ICNumber = Field(description="12-digit IC number")

    @model_validator(mode="after")
    def _passwords_match(self) -> "RegisterRequest":
        if self.password != self.password_confirmation:
            raise ValueError("The password confirmation does not match.")
        return self


class LoginRequest(CamelModel):
    email: EmailStr
    password: str


class UpdateProfileRequest(CamelModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    email: EmailStr | None = None


class VerifyIdentityRequest(CamelModel):
    ic_no: ICNumber


class UserOut(CamelModel):
    id: str
    name: str
    email: str
    ic_no: str
    role: str
    status_verified_person: bool
    created_at: datetime
    updated_at: datetime


class TokenOut(CamelModel):
    user: UserOut
    token: str
    token_type: str = "Bearer"


class IdentityVerificationOut(CamelModel):
    verified: bool
    message: str
    user: UserOut


class DeactivateOut(CamelModel):
    revoked_token_count: int
