"""
Admin Schemas

Request/response models for the admin console.
"""
from typing import Optional

from pydantic import BaseModel, Field


class Token(BaseModel):
    """JWT token response."""
    access_token: str
    token_type: str = "bearer"
    expires_in: int


class LoginRequest(BaseModel):
    """Admin login request body."""
    password: str = Field(..., min_length=1)


class HarnessRunRequest(BaseModel):
    """Run one harness suite (or all of them when suite is omitted)."""
    suite: Optional[str] = None
    timeout: float = Field(5.0, gt=0, le=60, description="Per-test timeout in seconds")
    run_timeout: Optional[float] = Field(None, gt=0, le=600, description="Whole-run timeout in seconds")
