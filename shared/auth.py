# vibeshare/shared/auth.py
#
# Tokens are issued by the external auth service; this module only signs
# (for tooling and tests) and verifies them.

import time
from typing import Optional

import jwt
from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from shared.config import settings
from shared.errors import Forbidden
from shared.logging_config import setup_logger

# Set up logger
logger = setup_logger(__name__)

ALGORITHM = "HS256"

security = HTTPBearer()


def create_jwt(user_id: str, expires_in: Optional[int] = None) -> str:
    payload = {"user_id": user_id}
    if expires_in is not None:
        payload["exp"] = int(time.time()) + expires_in
    token = jwt.encode(payload, settings.jwt_secret, algorithm=ALGORITHM)
    logger.debug(f"Created JWT token for user {user_id}")
    return token


def verify_jwt(token: str) -> str:
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[ALGORITHM])
    except jwt.PyJWTError as e:
        logger.warning(f"Invalid JWT token: {str(e)}")
        raise HTTPException(status_code=403, detail="Invalid token")
    user_id = payload.get("user_id")
    if not user_id:
        logger.warning("JWT token without user_id claim")
        raise HTTPException(status_code=403, detail="Invalid token")
    return str(user_id)


def require_user(credentials: HTTPAuthorizationCredentials = Depends(security)) -> str:
    """FastAPI dependency returning the caller's user id."""
    return verify_jwt(credentials.credentials)


def ensure_owner(project, user_id: str, action: str = "modify") -> None:
    if project.owner != user_id:
        logger.warning(f"User {user_id} tried to {action} project {project.id} owned by {project.owner}")
        raise Forbidden(f"Not authorized to {action} this project")


def ensure_can_view(project, user_id: str) -> None:
    if not project.is_public and project.owner != user_id:
        logger.warning(f"User {user_id} tried to view private project {project.id}")
        raise Forbidden("Not authorized to view this project")
