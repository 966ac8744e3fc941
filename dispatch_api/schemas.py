"""
Request Schemas

Pydantic models for the JSON bodies accepted by the account and Bleeter
routes. FastAPI validates request bodies against these before the handler
runs; failures are reshaped into field-keyed 400 responses by the handler
in dispatch_api.errors.
"""

from typing import Any

from pydantic import BaseModel, Field, field_validator

from dispatch_api.models import StatusViewMode, TableActionsAlignment


class BleeterPostSchema(BaseModel):
    title: str = Field(min_length=2, max_length=255)
    body: str = Field(min_length=1)
    # Structured document produced by the rich-text editor
    body_data: Any = None


class BleeterProfileSchema(BaseModel):
    handle: str = Field(min_length=2, max_length=255, pattern=r"^[A-Za-z0-9_.]+$")
    name: str = Field(min_length=2, max_length=255)
    bio: str | None = Field(default=None, max_length=1000)


class SoundSettingsSchema(BaseModel):
    panic_button: bool = True
    signal100: bool = True
    added_to_call: bool = False
    stop_roleplay: bool = False
    status_update: bool = False
    incoming_call: bool = False
    speech: bool = True
    speech_voice: str | None = None


class ChangeUserSchema(BaseModel):
    username: str = Field(min_length=3, max_length=255, pattern=r"^[\w-]+$")
    is_dark_theme: bool = True
    status_view_mode: StatusViewMode = StatusViewMode.DOT_COLOR
    table_actions_alignment: TableActionsAlignment = TableActionsAlignment.LEFT
    locale: str | None = None
    developer_mode: bool | None = None
    sound_settings: SoundSettingsSchema | None = None


class ChangePasswordSchema(BaseModel):
    """
    Password change body.

    `current_password` may be omitted (or sent empty) by accounts created
    through Discord/Steam that never had a local password.
    """
    current_password: str | None = Field(default=None, min_length=8, max_length=255)
    new_password: str = Field(min_length=8, max_length=255)
    confirm_password: str = Field(min_length=8, max_length=255)

    @field_validator("current_password", mode="before")
    @classmethod
    def empty_as_missing(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value
