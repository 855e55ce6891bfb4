from datetime import datetime

import jwt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from bulk_import.config import settings
from bulk_import.exceptions import UnauthorizedError

IMPORT_SCOPE = "imports"

_bearer = HTTPBearer()


def issue_token(subject: str, expires_at: datetime) -> str:
    payload = {"sub": subject, "scope": IMPORT_SCOPE, "exp": expires_at}
    return jwt.encode(payload, settings.jwt_secret, algorithm="HS256")


async def verify_token(
    credentials: HTTPAuthorizationCredentials = Depends(_bearer),  # noqa: B008
) -> dict:
    try:
        claims = jwt.decode(credentials.credentials, settings.jwt_secret, algorithms=["HS256"])
    except jwt.ExpiredSignatureError:
        raise UnauthorizedError("Token has expired") from None
    except jwt.InvalidTokenError:
        raise UnauthorizedError("Invalid token") from None

    if claims.get("scope") != IMPORT_SCOPE:
        raise UnauthorizedError("Token is not allowed to run imports")
    return claims
