from datetime import UTC, datetime, timedelta

from fastapi import APIRouter
from pydantic import BaseModel

from bulk_import.auth import issue_token
from bulk_import.config import settings
from bulk_import.exceptions import UnauthorizedError

router = APIRouter()


class LoginRequest(BaseModel):
    username: str
    password: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_at: datetime


@router.post("/login", response_model=TokenResponse)
async def login(data: LoginRequest) -> TokenResponse:
    if data.username != settings.auth_username or data.password != settings.auth_password:
        raise UnauthorizedError("Invalid credentials")

    expires_at = datetime.now(UTC) + timedelta(minutes=settings.jwt_expire_minutes)
    return TokenResponse(access_token=issue_token(data.username, expires_at), expires_at=expires_at)
