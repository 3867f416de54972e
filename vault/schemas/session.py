"""Pydantic schemas for login and session listing."""

import uuid
from datetime import datetime

from pydantic import BaseModel, Field


class LoginRequest(BaseModel):
    login: str = Field(..., min_length=1, max_length=320, description="Email or nickname")
    password: str = Field(..., min_length=1, max_length=64)


class SessionResponse(BaseModel):
    id: str
    account_id: uuid.UUID
    user_agent: str
    ip: str
    max_age: int
    expires_at: int
    created_at: datetime

    model_config = {"from_attributes": True}


class SessionListResponse(BaseModel):
    sessions: list[SessionResponse]
    current_session_id: str


class TerminatedResponse(BaseModel):
    terminated: int
