from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class ProfileOut(BaseModel):
    subject: str
    email: str | None = None
    display_name: str | None = None
    plan: str
    created_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class ProfileLookupOut(BaseModel):
    profile: ProfileOut | None = None


class ProfileUserOut(BaseModel):
    profile: ProfileOut


class ProfileCreateOut(BaseModel):
    user: ProfileUserOut
