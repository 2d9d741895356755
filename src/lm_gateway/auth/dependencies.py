"""FastAPI dependencies: caller identity.

Usage in any protected router:
    from src.lm_gateway.auth.dependencies import get_current_principal

    @router.post("/protected")
    async def protected(principal: Principal = Depends(get_current_principal)):
        ...

There is no user table here: the token's `sub` is trusted as the user id.
"""

from dataclasses import dataclass

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer

from src.lm_common.errors import AdminRequiredError, InvalidCredentialsError
from src.lm_gateway.auth.jwt_handler import decode_token

# tokenUrl points at the external session service; only used by Swagger UI
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login")
optional_oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login", auto_error=False)

# Reusable 401 exception with WWW-Authenticate header (OAuth2 standard)
_CREDENTIALS_EXCEPTION = HTTPException(
    status_code=status.HTTP_401_UNAUTHORIZED,
    detail="Invalid or expired token",
    headers={"WWW-Authenticate": "Bearer"},
)


@dataclass(frozen=True)
class Principal:
    user_id: str
    role: str | None = None

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


def _principal_from_token(token: str) -> Principal:
    try:
        payload = decode_token(token, expected_type="access")
    except InvalidCredentialsError:
        raise _CREDENTIALS_EXCEPTION from None

    user_id = payload.get("sub")
    if not user_id:
        raise _CREDENTIALS_EXCEPTION
    return Principal(user_id=str(user_id), role=payload.get("role"))


async def get_current_principal(token: str = Depends(oauth2_scheme)) -> Principal:
    """Raises HTTP 401 if the token is missing, invalid, or expired."""
    return _principal_from_token(token)


async def get_optional_principal(
    token: str | None = Depends(optional_oauth2_scheme),
) -> Principal | None:
    """None for anonymous callers; a present but bad token is still a 401."""
    if token is None:
        return None
    return _principal_from_token(token)


async def require_admin(
    principal: Principal = Depends(get_current_principal),
) -> Principal:
    if not principal.is_admin:
        raise AdminRequiredError()
    return principal


def client_ip(request: Request) -> str | None:
    """First hop of X-Forwarded-For, else the socket peer."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    return request.client.host if request.client else None
