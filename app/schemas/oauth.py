from typing import List, Optional
from pydantic import BaseModel, Field


class TokenResponse(BaseModel):
    """Token endpoint response."""
    access_token: str
    token_type: str = "Bearer"
    refresh_token: Optional[str] = None
    expires_in: Optional[int] = Field(None, description="Seconds until the access token expires")
    scope: Optional[str] = Field(None, description="Space separated granted scope")


class CheckTokenResponse(BaseModel):
    """Token introspection response."""
    active: bool = Field(..., description="False for unknown, expired or revoked tokens; nothing else is returned then")
    exp: Optional[int] = None
    user_name: Optional[str] = None
    authorities: Optional[List[str]] = None
    client_id: Optional[str] = None
    scope: Optional[List[str]] = None


class OAuth2ErrorResponse(BaseModel):
    error: str
    error_description: Optional[str] = None
