"""Pydantic schemas for signup, login, session checks and account settings."""
from datetime import datetime

from pydantic import BaseModel


class SignupSchema(BaseModel):
    # presence and format are checked by validate_signup so errors name the field
    name: str = ""
    email: str = ""
    password: str = ""


class LoginSchema(BaseModel):
    email: str = ""
    password: str = ""


class PrincipalSchema(BaseModel):
    id: int
    email: str
    name: str

    class Config:
        from_attributes = True


class LoginOutSchema(BaseModel):
    user: PrincipalSchema
    expires_at: datetime


class AuthCheckSchema(BaseModel):
    authenticated: bool
    user: PrincipalSchema | None = None


class MessageSchema(BaseModel):
    message: str


class PreferencesSchema(BaseModel):
    subjects: list[str] = []
    daily_goal: int = 30
    reminder_time: str = "09:00"

    class Config:
        from_attributes = True


class PreferencesPatchSchema(BaseModel):
    subjects: list[str] | None = None
    daily_goal: int | None = None
    reminder_time: str | None = None


class AccountOutSchema(BaseModel):
    id: int
    name: str
    email: str
    created_at: datetime
    preferences: PreferencesSchema


class PasswordChangeSchema(BaseModel):
    current_password: str = ""
    new_password: str = ""
