import re
from datetime import datetime
from typing import List, Optional
from uuid import uuid4

from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator

from horde.models.common import (
    Currency,
    DateFormat,
    Role,
    Theme,
    TimeFormat,
    get_currency_symbol,
)

PASSWORD_PATTERN = re.compile(
    r"^(?=.*[A-Z])(?=.*[a-z])(?=.*\d)(?=.*[!@#$%^&*()_+\-=\[\]{};':\"\\|,.<>/?]).{8,}$"
)
USER_NAME_PATTERN = re.compile(r"^[A-Za-z_]+$")


def _check_password(value: str) -> str:
    if len(value) < 8:
        raise ValueError("Password must be at least 8 characters long")
    if not PASSWORD_PATTERN.match(value):
        raise ValueError(
            "Password must include at least one uppercase letter, one lowercase letter, "
            "one number, and one special character."
        )
    return value


class _EmailBody(BaseModel):
    email: EmailStr

    @field_validator("email")
    @classmethod
    def lower_email(cls, value: str) -> str:
        return value.lower()


class Preferences(BaseModel):
    theme: Theme = Theme.LIGHT
    notifications: bool = False
    currency: Currency = Currency.NGN
    currency_sym: str = Field(default_factory=lambda: get_currency_symbol(Currency.NGN))
    date_format: DateFormat = DateFormat.DD_MM_YYYY
    time_format: TimeFormat = TimeFormat.HOUR_12
    profile_image: Optional[str] = None


class UserCreate(_EmailBody):
    full_name: str = Field(max_length=50)
    password: str

    @field_validator("password")
    @classmethod
    def strong_password(cls, value: str) -> str:
        return _check_password(value)


class UserLogin(_EmailBody):
    password: str


class EmailRequest(_EmailBody):
    pass


class TokenRequest(BaseModel):
    token: str


class RefreshTokenRequest(BaseModel):
    refresh_token: str


class ResetPasswordRequest(BaseModel):
    token: str
    password: str

    @field_validator("password")
    @classmethod
    def strong_password(cls, value: str) -> str:
        return _check_password(value)


class PendingUserInDB(BaseModel):
    pending_id: str = Field(default_factory=lambda: str(uuid4()))
    full_name: str
    email: str
    user_name: Optional[str] = None
    password_hash: Optional[str] = None
    created_at: str = Field(default_factory=lambda: datetime.utcnow().isoformat())
    expires_at: int


class PendingUserPublic(BaseModel):
    full_name: str
    email: str
    user_name: Optional[str] = None
    created_at: str


class UserInDB(BaseModel):
    user_id: str = Field(default_factory=lambda: str(uuid4()))
    full_name: str
    user_name: Optional[str] = None
    email: str
    password_hash: Optional[str] = None
    roles: List[Role] = Field(default_factory=lambda: [Role.USER])
    preferences: Preferences = Field(default_factory=Preferences)
    auth_provider: str = "local"
    created_at: str = Field(default_factory=lambda: datetime.utcnow().isoformat())
    updated_at: str = Field(default_factory=lambda: datetime.utcnow().isoformat())

    @model_validator(mode="after")
    def default_user_name(self):
        # First word of the full name until the user picks one
        if not self.user_name and self.full_name.strip():
            self.user_name = self.full_name.split()[0][:40]
        return self


class UserPublic(BaseModel):
    user_id: str
    full_name: str
    user_name: Optional[str] = None
    email: str
    roles: List[Role]
    preferences: Preferences
    auth_provider: str = "local"
    created_at: str
    updated_at: Optional[str] = None


class ProfileUpdate(BaseModel):
    full_name: Optional[str] = Field(default=None, max_length=50)
    user_name: Optional[str] = Field(default=None, max_length=15)

    @field_validator("user_name")
    @classmethod
    def letters_and_underscores(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not USER_NAME_PATTERN.match(value):
            raise ValueError("Usernames must contain only alphabetic characters and underscores.")
        return value


class PreferencesUpdate(BaseModel):
    theme: Optional[Theme] = None
    notifications: Optional[bool] = None
    currency: Optional[Currency] = None
    date_format: Optional[DateFormat] = None
    time_format: Optional[TimeFormat] = None


class RoleUpdate(BaseModel):
    roles: List[Role] = Field(min_length=1)
