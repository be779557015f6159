# legaldocs/auth.py
import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel

from legaldocs.config import settings
from legaldocs.session import SessionContext, sessions

_bearer = HTTPBearer(auto_error=False)


class AuthedUser(BaseModel):
    sub: str


def require_bearer_auth(auth_headers: HTTPAuthorizationCredentials = Depends(_bearer)) -> AuthedUser:
    """Verifies an already-issued HS256 token; the subject is the owning principal."""
    if not auth_headers or auth_headers.scheme.lower() != "bearer":
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    try:
        payload = jwt.decode(
            auth_headers.credentials,
            settings.jwt_secret,
            algorithms=["HS256"],
            options={
                "require": ["exp", "sub"],
                "verify_aud": False,
                "verify_iss": False,
            },
        )
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Token expired")
    except jwt.InvalidTokenError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")
    return AuthedUser(sub=str(payload["sub"]))


def get_session_context(user: AuthedUser = Depends(require_bearer_auth)) -> SessionContext:
    return sessions.get(user.sub)
