"""
Pydantic schemas for session authentication endpoints.
"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field


class User(BaseModel):
    """Application user (created on first sign-in)."""
    id: str
    google_id: str = ""
    email: str
    name: str = ""
    picture: Optional[str] = None
    role: Literal["user", "admin"] = "user"
    created_at: datetime
    updated_at: datetime


class UserUpsert(BaseModel):
    """Fields used to create or update a user."""
    google_id: str = ""
    email: str = ""
    name: str = ""
    picture: Optional[str] = None
    role: Literal["user", "admin"] = "user"


class SessionRequest(BaseModel):
    """Firebase ID token exchanged for a server session."""
    id_token: Optional[str] = Field(
        None,
        alias="idToken",
        description="Firebase Auth ID token obtained by the client"
    )

    model_config = {"populate_by_name": True}


class MessageResponse(BaseModel):
    message: str
