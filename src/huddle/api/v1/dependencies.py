"""Shared API dependencies for authentication and common functionality."""

from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session, sessionmaker

from huddle.core.security import InvalidToken, decode_user_id
from huddle.db.session import SessionLocal, get_db
from huddle.models import User
from huddle.services.messaging import MessageRouter
from huddle.services.notifications import NotificationService
from huddle.services.presence import PresenceRegistry, get_presence_registry

# HTTP Bearer scheme for JWT authentication
bearer_scheme = HTTPBearer()

# Type alias for database session dependency
SessionDep = Annotated[Session, Depends(get_db)]


def get_session_factory() -> sessionmaker[Session]:
    """Return the factory long-lived connections use to open short sessions."""
    return SessionLocal


SessionFactoryDep = Annotated[sessionmaker[Session], Depends(get_session_factory)]


def resolve_user(db: Session, token: str) -> User:
    """Return the user a bearer token identifies.

    Raises:
        InvalidToken: If the token is invalid or names an unknown user.
    """
    user_id = decode_user_id(token)
    user = db.get(User, user_id)
    if user is None:
        raise InvalidToken("User not found")
    return user


def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(bearer_scheme)],
    db: SessionDep,
) -> User:
    """Get the current authenticated user from the bearer token.

    Args:
        credentials: HTTP Bearer token credentials
        db: Database session

    Returns:
        User object for the authenticated user

    Raises:
        HTTPException: If token is invalid or user not found
    """
    try:
        return resolve_user(db, credentials.credentials)
    except InvalidToken as err:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(err),
            headers={"WWW-Authenticate": "Bearer"},
        ) from err


def get_presence_dep() -> PresenceRegistry:
    """Return the process-wide presence registry."""
    return get_presence_registry()


def get_notification_service(db: SessionDep) -> NotificationService:
    """Return a notification service bound to the request session."""
    return NotificationService(db)


PresenceDep = Annotated[PresenceRegistry, Depends(get_presence_dep)]
NotifierDep = Annotated[NotificationService, Depends(get_notification_service)]


def get_message_router(
    db: SessionDep,
    presence: PresenceDep,
    notifier: NotifierDep,
) -> MessageRouter:
    """Return a message router bound to the request session."""
    return MessageRouter(db, presence, notifier)


# Type aliases for the remaining dependencies
CurrentUserDep = Annotated[User, Depends(get_current_user)]
MessageRouterDep = Annotated[MessageRouter, Depends(get_message_router)]
