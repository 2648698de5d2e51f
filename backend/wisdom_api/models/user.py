from sqlmodel import SQLModel, Field
from sqlalchemy import Column, JSON
from pydantic import EmailStr, field_validator
from datetime import datetime
from enum import Enum
from uuid import UUID, uuid4
from typing import Optional, List


class Interest(str, Enum):
    """Topics a reader can follow; drives content recommendations."""
    MINDSET = "Mindset"
    CONSCIOUSNESS = "Consciousness"
    DISCIPLINE = "Discipline"
    GROWTH = "Growth"
    SPIRITUAL_DEVELOPMENT = "Spiritual Development"
    PSYCHOLOGY = "Psychology"
    SELF_IMPROVEMENT = "Self-Improvement"
    MEDITATION = "Meditation"
    PHILOSOPHY = "Philosophy"
    WELLNESS = "Wellness"
    MOTIVATION = "Motivation"
    LEADERSHIP = "Leadership"
    RELATIONSHIPS = "Relationships"
    HABITS = "Habits"
    RESILIENCE = "Resilience"
    AUTHENTICITY = "Authenticity"
    INTUITION = "Intuition"


ALL_INTERESTS: List[str] = [i.value for i in Interest]


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def is_valid_timezone(value: str) -> bool:
    """Accept "UTC" or an IANA Area/City name."""
    value = (value or "").strip()
    return value == "UTC" or ("/" in value and " " not in value)


class UserBase(SQLModel):
    """Base model with shared fields."""
    email: EmailStr = Field(unique=True, index=True, max_length=320)
    name: str = Field(max_length=120)
    timezone: str = Field(default="UTC", max_length=64, description="IANA timezone string for scheduling display")


class User(UserBase, table=True):
    """The database model for a User."""
    id: UUID = Field(default_factory=uuid4, primary_key=True, index=True)
    hashed_password: str
    email_verified: bool = Field(default=False)
    # Only the SHA-256 of a verification/reset token is stored; the raw value goes out by email
    verification_token_hash: Optional[str] = Field(default=None, max_length=64, index=True)
    verification_token_expires_at: Optional[datetime] = None
    reset_token_hash: Optional[str] = Field(default=None, max_length=64, index=True)
    reset_token_expires_at: Optional[datetime] = None
    interests: List[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False, default=list))
    # Role field for admin access; None for regular users
    role: Optional[str] = Field(default=None, max_length=50, description="User role: 'admin' or None for regular users")
    created_at: datetime = Field(default_factory=datetime.utcnow)
    last_login: Optional[datetime] = Field(default=None, description="Timestamp of last successful login")


class UserCreate(SQLModel):
    """Model used for signing up; the password is hashed before storage."""
    email: EmailStr
    password: str
    name: str = Field(min_length=1, max_length=120)
    interests: List[Interest] = Field(default_factory=list)
    timezone: str = "UTC"

    @field_validator("email")
    @classmethod
    def _lower_email(cls, v: str) -> str:
        return normalize_email(v)

    @field_validator("name")
    @classmethod
    def _strip_name(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("name must not be empty")
        return v

    @field_validator("timezone")
    @classmethod
    def _check_timezone(cls, v: str) -> str:
        v = (v or "UTC").strip()
        if not is_valid_timezone(v):
            raise ValueError("Invalid timezone")
        return v


class UserPublic(SQLModel):
    """Fields safe to return from the API."""
    id: UUID
    email: str
    name: str
    email_verified: bool
    interests: List[str] = []
    timezone: str = "UTC"
    role: Optional[str] = None
    created_at: datetime
    last_login: Optional[datetime] = None


class UserProfileUpdate(SQLModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=120)
    timezone: Optional[str] = None
    interests: Optional[List[Interest]] = None
