import re

from pydantic import Field, ValidationInfo, field_validator

from kernelpanel.schemas.base import CamelModel

SPECIAL_CHARACTER = re.compile(r"[^A-Za-z0-9]")


class LoginRequest(CamelModel):
    username: str
    password: str


class TokenResponse(CamelModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int


class AdminResponse(CamelModel):
    username: str
    session_timeout_minutes: int


class ChangeUsernameRequest(CamelModel):
    new_username: str = Field(min_length=3, max_length=128)
    current_password: str

    @field_validator("new_username", mode="before")
    @classmethod
    def strip_username(cls, value):
        return value.strip() if isinstance(value, str) else value


class ChangePasswordRequest(CamelModel):
    current_password: str
    new_password: str = Field(min_length=8, max_length=256)
    confirm_password: str

    @field_validator("new_password")
    @classmethod
    def password_strength(cls, value: str) -> str:
        if not re.search(r"[A-Za-z]", value):
            raise ValueError("password must contain a letter")
        if not re.search(r"\d", value):
            raise ValueError("password must contain a digit")
        if not SPECIAL_CHARACTER.search(value):
            raise ValueError("password must contain a special character")
        return value

    @field_validator("confirm_password")
    @classmethod
    def passwords_match(cls, value: str, info: ValidationInfo) -> str:
        if "new_password" in info.data and value != info.data["new_password"]:
            raise ValueError("passwords do not match")
        return value
