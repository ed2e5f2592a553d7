"""FastAPI dependencies: get_token_subject, get_current_session.

Usage in any protected router:
    from src.rp_gateway.auth.dependencies import get_current_session

    @router.get("/protected")
    async def protected(session: Session = Depends(get_current_session)):
        ...
"""

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.rp_account.infrastructure.persistence import AccountRepository
from src.rp_common.database import get_db_session
from src.rp_common.errors import AccountNotFoundError, InvalidCredentialsError
from src.rp_gateway.auth.jwt_handler import decode_token
from src.rp_gateway.auth.session import Session

# tokenUrl tells Swagger UI where the external auth service issues tokens
oauth2_scheme = OAuth2PasswordBearer(tokenUrl=settings.AUTH_TOKEN_URL)

# Reusable 401 exception with WWW-Authenticate header (OAuth2 standard)
_CREDENTIALS_EXCEPTION = HTTPException(
    status_code=status.HTTP_401_UNAUTHORIZED,
    detail="Invalid or expired token",
    headers={"WWW-Authenticate": "Bearer"},
)

_accounts = AccountRepository()


async def get_token_subject(token: str = Depends(oauth2_scheme)) -> str:
    """Validate the bearer token and return its subject (the account id)."""
    try:
        payload = decode_token(token)
    except InvalidCredentialsError:
        raise _CREDENTIALS_EXCEPTION from None
    return payload["sub"]


async def get_current_session(
    account_id: str = Depends(get_token_subject),
    db: AsyncSession = Depends(get_db_session),
) -> Session:
    """Resolve the provisioned account for the token subject.

    Raises AccountNotFoundError (2003) when the subject has not opened an
    account yet; clients then call POST /account.
    """
    account = await _accounts.get_account(db, account_id)
    if account is None:
        raise AccountNotFoundError(account_id)
    return Session.for_account(account)
