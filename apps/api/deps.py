from collections.abc import Iterator
from typing import Optional

from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from core.config import Settings, settings
from core.errors import AuthenticationError
from core.security import decode_token
from services.persistence.blobs import FilesystemBlobStore
from services.persistence.database import get_session_maker
from services.persistence.tables import User
from services.users import UserDirectory

# tokens are issued by the identity provider; this only documents the scheme
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/token", auto_error=False)


def get_settings() -> Settings:
    """Provides application settings/config globally."""
    return settings


def get_db() -> Iterator[Session]:
    """One session per request."""
    session = get_session_maker()()
    try:
        yield session
    finally:
        session.close()


def get_blob_store(cfg: Settings = Depends(get_settings)) -> FilesystemBlobStore:
    return FilesystemBlobStore(cfg.STORAGE_ROOT)


def get_current_user(
    token: Optional[str] = Depends(oauth2_scheme),
    db: Session = Depends(get_db),
    cfg: Settings = Depends(get_settings),
) -> User:
    """
    Verify the bearer token and upsert the local user record.
    New users start as employers.
    """
    if not token:
        raise AuthenticationError("not authenticated")
    claims = decode_token(token, cfg)
    return UserDirectory(db).upsert_from_claims(claims)
