from typing import Optional
from fastapi import Depends, HTTPException, status, Cookie, Header
from sqlalchemy.orm import Session
from app.core.auth import verify_token
from app.db.session import get_db
from app.models.user import User


def _extract_token(access_token: Optional[str], authorization: Optional[str]) -> Optional[str]:
    # Bearer header wins over the browser cookie
    if authorization and authorization.startswith("Bearer "):
        return authorization[7:]
    return access_token


async def get_current_user(
    access_token: Optional[str] = Cookie(None),
    authorization: Optional[str] = Header(None),
    db: Session = Depends(get_db)
) -> User:
    """Get the current authenticated user from a bearer token or JWT cookie"""

    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    token = _extract_token(access_token, authorization)
    if not token:
        raise credentials_exception

    payload = verify_token(token)
    if payload is None:
        raise credentials_exception

    user_id: str = payload.get("sub")
    if user_id is None:
        raise credentials_exception

    user = db.query(User).filter(User.id == user_id).first()
    if user is None:
        raise credentials_exception

    return user


def require_role(*roles: str):
    """Dependency factory that only lets the given roles through"""

    async def _checker(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role not in roles:
            wanted = " or ".join(r.capitalize() for r in roles)
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"{wanted} access required"
            )
        return current_user

    return _checker
