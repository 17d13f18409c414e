"""
Pydantic schemas for the login and session routes.
"""
from __future__ import annotations

from typing import Any, Literal, Optional

from pydantic import BaseModel, Field


class LoginIn(BaseModel):
    # Emptiness is judged by the login flow itself so it can answer with its own
    # error; only obviously oversized input is rejected here.
    email: str = Field(default="", max_length=320)
    password: str = Field(default="", max_length=256)


class SessionIdentityOut(BaseModel):
    subject: str
    email: Optional[str] = None
    auth_provider: str


class SessionOut(BaseModel):
    identity: SessionIdentityOut
    profile: dict[str, Any]


class LoginOut(BaseModel):
    status: Literal["OK"] = "OK"
    navigate_to: str
    session: SessionOut


class SessionLookupOut(BaseModel):
    session: Optional[SessionOut] = None
