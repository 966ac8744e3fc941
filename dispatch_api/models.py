"""
Database Models for the Dispatch API

This module defines the SQLAlchemy ORM models used by the account and
Bleeter handlers:
- User, UserSoundSettings, UserSession, ActiveDispatcher: accounts and their
  linked records
- Cad: the application-wide configuration record
- StatusValue, Officer, EmsFdDeputy, DispatchChat, UnitLog: on-duty units
  and the records tied to them
- BleeterProfile, BleeterPost: the social posting feature
- AuditLog: record of account-level actions

Primary keys are random hex strings. Dispatch chat rows and unit logs point
at either an officer or an EMS/FD deputy, so unit ids must never collide
across the two tables.
"""

import enum
import uuid
from datetime import datetime

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    String,
    Text,
)
from sqlalchemy.orm import declarative_base, relationship


Base = declarative_base()


def generate_id() -> str:
    return uuid.uuid4().hex


class Rank(str, enum.Enum):
    OWNER = "OWNER"
    ADMIN = "ADMIN"
    USER = "USER"


class ShouldDoType(str, enum.Enum):
    SET_OFF_DUTY = "SET_OFF_DUTY"
    SET_ON_DUTY = "SET_ON_DUTY"
    SET_STATUS = "SET_STATUS"
    PANIC_BUTTON = "PANIC_BUTTON"


class StatusViewMode(str, enum.Enum):
    FULL_ROW_COLOR = "FULL_ROW_COLOR"
    DOT_COLOR = "DOT_COLOR"


class TableActionsAlignment(str, enum.Enum):
    NONE = "NONE"
    LEFT = "LEFT"
    RIGHT = "RIGHT"


class Feature(str, enum.Enum):
    BLEETER = "BLEETER"
    TOW = "TOW"
    TAXI = "TAXI"
    COURTHOUSE = "COURTHOUSE"


class UnitType(str, enum.Enum):
    LEO = "leo"
    EMS_FD = "ems-fd"


class UserSoundSettings(Base):
    """Per-user toggles for the dispatch sound effects."""
    __tablename__ = "user_sound_settings"

    id = Column(String, primary_key=True, default=generate_id)
    panic_button = Column(Boolean, default=True)
    signal100 = Column(Boolean, default=True)
    added_to_call = Column(Boolean, default=False)
    stop_roleplay = Column(Boolean, default=False)
    status_update = Column(Boolean, default=False)
    incoming_call = Column(Boolean, default=False)
    speech = Column(Boolean, default=True)
    speech_voice = Column(String, nullable=True)


class User(Base):
    """
    User account.

    Accounts created through Discord or Steam start with an empty password;
    `temp_password` is set when an administrator resets the password and is
    checked before `password` until the user picks a new one.
    """
    __tablename__ = "users"

    id = Column(String, primary_key=True, default=generate_id)
    username = Column(String, unique=True, index=True, nullable=False)

    password = Column(String, nullable=False, default="")
    temp_password = Column(String, nullable=True)

    discord_id = Column(String, unique=True, nullable=True)
    steam_id = Column(String, unique=True, nullable=True)

    rank = Column(Enum(Rank), default=Rank.USER, nullable=False)

    # Preferences
    is_dark_theme = Column(Boolean, default=True, nullable=False)
    locale = Column(String, nullable=True)
    status_view_mode = Column(
        Enum(StatusViewMode), default=StatusViewMode.DOT_COLOR, nullable=False
    )
    table_actions_alignment = Column(
        Enum(TableActionsAlignment), default=TableActionsAlignment.LEFT, nullable=False
    )
    developer_mode = Column(Boolean, default=False, nullable=False)

    sound_settings_id = Column(
        String, ForeignKey("user_sound_settings.id", ondelete="SET NULL"), nullable=True
    )
    sound_settings = relationship("UserSoundSettings", lazy="selectin")

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Linked records are removed together with the account
    sessions = relationship("UserSession", back_populates="user", cascade="all, delete-orphan")
    active_dispatchers = relationship(
        "ActiveDispatcher", back_populates="user", cascade="all, delete-orphan"
    )
    officers = relationship("Officer", back_populates="user", cascade="all, delete-orphan")
    ems_fd_deputies = relationship(
        "EmsFdDeputy", back_populates="user", cascade="all, delete-orphan"
    )
    bleeter_posts = relationship("BleeterPost", back_populates="user", cascade="all, delete-orphan")
    bleeter_profile = relationship(
        "BleeterProfile", back_populates="user", uselist=False, cascade="all, delete-orphan"
    )


class UserSession(Base):
    """Refresh-token session. Every row is removed on logout."""
    __tablename__ = "user_sessions"

    id = Column(String, primary_key=True, default=generate_id)
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)
    refresh_token = Column(String, nullable=False)
    expires_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    user = relationship("User", back_populates="sessions")


class ActiveDispatcher(Base):
    """Marks a user as currently dispatching."""
    __tablename__ = "active_dispatchers"

    id = Column(String, primary_key=True, default=generate_id)
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    user = relationship("User", back_populates="active_dispatchers")


class Cad(Base):
    """
    Application-wide configuration.

    `discord_roles` holds the Discord role mapping and is never sent to
    regular users.
    """
    __tablename__ = "cads"

    id = Column(String, primary_key=True, default=generate_id)
    name = Column(String, nullable=False)
    owner_id = Column(String, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    area_of_play = Column(String, nullable=True)
    disabled_features = Column(JSON, default=list, nullable=False)
    discord_roles = Column(JSON, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)


class StatusValue(Base):
    """A unit status (e.g. "10-8"). `should_do` says what selecting it means."""
    __tablename__ = "status_values"

    id = Column(String, primary_key=True, default=generate_id)
    value = Column(String, nullable=False)
    should_do = Column(Enum(ShouldDoType), default=ShouldDoType.SET_STATUS, nullable=False)


class Officer(Base):
    __tablename__ = "officers"

    id = Column(String, primary_key=True, default=generate_id)
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)
    name = Column(String, nullable=False)
    status_id = Column(String, ForeignKey("status_values.id", ondelete="SET NULL"), nullable=True)
    active_call_id = Column(String, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    user = relationship("User", back_populates="officers")
    status = relationship("StatusValue", lazy="selectin")


class EmsFdDeputy(Base):
    __tablename__ = "ems_fd_deputies"

    id = Column(String, primary_key=True, default=generate_id)
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)
    name = Column(String, nullable=False)
    status_id = Column(String, ForeignKey("status_values.id", ondelete="SET NULL"), nullable=True)
    active_call_id = Column(String, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    user = relationship("User", back_populates="ems_fd_deputies")
    status = relationship("StatusValue", lazy="selectin")


class DispatchChat(Base):
    """Message between dispatch and a unit (officer or deputy)."""
    __tablename__ = "dispatch_chats"

    id = Column(String, primary_key=True, default=generate_id)
    unit_id = Column(String, index=True, nullable=False)
    message = Column(Text, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)


class UnitLog(Base):
    """
    Shift log for a unit. A log is open while `ended_at` is NULL and is
    closed when the unit goes off duty.
    """
    __tablename__ = "unit_logs"

    id = Column(String, primary_key=True, default=generate_id)
    unit_id = Column(String, index=True, nullable=False)
    unit_type = Column(Enum(UnitType), nullable=False)
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)
    started_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    ended_at = Column(DateTime, nullable=True)


class BleeterProfile(Base):
    """Author identity for Bleeter posts. One per user, unique lowercase handle."""
    __tablename__ = "bleeter_profiles"

    id = Column(String, primary_key=True, default=generate_id)
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False)
    handle = Column(String, unique=True, index=True, nullable=False)
    name = Column(String, nullable=False)
    bio = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    user = relationship("User", back_populates="bleeter_profile")


class BleeterPost(Base):
    __tablename__ = "bleeter_posts"

    id = Column(String, primary_key=True, default=generate_id)
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)
    creator_id = Column(
        String, ForeignKey("bleeter_profiles.id", ondelete="SET NULL"), nullable=True, index=True
    )

    title = Column(String, nullable=False)
    body = Column(Text, nullable=False)
    # Rich-text editor document
    body_data = Column(JSON, nullable=True)

    image_id = Column(String, nullable=True)
    image_blur_data = Column(Text, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    user = relationship("User", back_populates="bleeter_posts")
    creator = relationship("BleeterProfile")


class AuditLog(Base):
    """
    Model for audit logs.

    Records account-level actions (deletion, password change, logout).
    """
    __tablename__ = "audit_logs"

    id = Column(String, primary_key=True, default=generate_id)
    action = Column(String, index=True)  # e.g. "user_deleted", "password_changed"
    user_id = Column(String, index=True)  # Actor
    details = Column(String, nullable=True)  # JSON or text description
    created_at = Column(DateTime, default=datetime.utcnow)
