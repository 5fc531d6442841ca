"""Schemas for authentication endpoints."""

from pydantic import BaseModel, Field, constr


class LoginRequest(BaseModel):
    """Payload for user login."""

    email: constr(strip_whitespace=True, min_length=3, max_length=255) = Field(..., description="User e-mail")
    password: constr(min_length=8, max_length=128) = Field(..., description="User password")


class Token(BaseModel):
    """Access token returned after successful authentication."""

    access_token: str = Field(..., description="JWT access token")
    token_type: str = Field(default="bearer", description="Token type, always 'bearer'")
    expires_in: int | None = Field(
        default=None,
        description="Number of seconds until the access token expires",
    )
