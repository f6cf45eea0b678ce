"""Authentication service for user management and JWT handling."""
import uuid
from datetime import datetime, timedelta, timezone

import bcrypt
from jose import JWTError, jwt
from sqlalchemy import delete, or_, select, update
from sqlalchemy.orm import Session as DbSession

from lms_api.config import (
    ACCESS_TOKEN_EXPIRE_MINUTES,
    ALGORITHM,
    SECRET_KEY,
    SESSION_EXTEND_MINUTES,
)
from lms_api.models.db.user import Session, User


def hash_password(password: str) -> str:
    """Hash a password using bcrypt."""
    salt = bcrypt.gensalt()
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash."""
    return bcrypt.checkpw(
        plain_password.encode("utf-8"), hashed_password.encode("utf-8")
    )


def create_access_token(user_id: int, jti: str | None = None) -> tuple[str, str]:
    """Create a JWT access token.

    Returns:
        Tuple of (token, jti)
    """
    if jti is None:
        jti = str(uuid.uuid4())

    expire = datetime.now(timezone.utc) + timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    to_encode = {
        "sub": str(user_id),
        "exp": expire,
        "jti": jti,
    }
    encoded_jwt = jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)
    return encoded_jwt, jti


def verify_token(token: str) -> dict | None:
    """Verify and decode a JWT token.

    Returns:
        Decoded token payload or None if invalid.
    """
    try:
        return jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        return None


def get_user_by_login(db: DbSession, login: str) -> User | None:
    """Get user by username or email."""
    stmt = select(User).where(or_(User.username == login, User.email == login))
    return db.execute(stmt).scalars().first()


def get_user_by_username(db: DbSession, username: str) -> User | None:
    """Get user by username."""
    return db.execute(select(User).where(User.username == username)).scalar_one_or_none()


def get_user_by_email(db: DbSession, email: str) -> User | None:
    """Get user by email."""
    return db.execute(select(User).where(User.email == email)).scalar_one_or_none()


def get_user_by_id(db: DbSession, user_id: int) -> User | None:
    """Get user by ID."""
    return db.get(User, user_id)


def create_user(
    db: DbSession,
    username: str,
    email: str,
    password: str,
    name: str | None = None,
    nim: str | None = None,
    is_admin: bool = False,
) -> User:
    """Create a new user."""
    user = User(
        username=username,
        email=email,
        hashed_password=hash_password(password),
        name=name,
        nim=nim,
        is_admin=is_admin,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def create_session(
    db: DbSession, user_id: int, token_jti: str, expires_at: datetime
) -> Session:
    """Create a new session for user."""
    session = Session(
        user_id=user_id,
        token_jti=token_jti,
        expires_at=expires_at,
    )
    db.add(session)
    db.commit()
    db.refresh(session)
    return session


def issue_token(db: DbSession, user_id: int) -> str:
    """Create a token and the server-side session backing it."""
    token, jti = create_access_token(user_id)
    expires_at = datetime.now(timezone.utc) + timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    create_session(db, user_id, jti, expires_at)
    return token


def get_active_session(db: DbSession, token_jti: str) -> Session | None:
    """Get an active session by token JTI."""
    now = datetime.now(timezone.utc)
    stmt = select(Session).where(
        Session.token_jti == token_jti,
        Session.is_active == True,  # noqa: E712
        Session.expires_at > now,
    )
    return db.execute(stmt).scalars().first()


def extend_session(db: DbSession, session: Session) -> Session:
    """Extend session expiration and update last activity."""
    now = datetime.now(timezone.utc)
    session.last_activity = now
    session.expires_at = now + timedelta(minutes=SESSION_EXTEND_MINUTES)
    db.commit()
    db.refresh(session)
    return session


def invalidate_session(db: DbSession, token_jti: str) -> None:
    """Invalidate a session by token JTI."""
    session = db.execute(
        select(Session).where(Session.token_jti == token_jti)
    ).scalar_one_or_none()
    if session:
        session.is_active = False
        db.commit()


def invalidate_all_user_sessions(db: DbSession, user_id: int) -> int:
    """Invalidate all sessions for a user."""
    result = db.execute(
        update(Session)
        .where(Session.user_id == user_id, Session.is_active == True)  # noqa: E712
        .values(is_active=False)
    )
    db.commit()
    return result.rowcount


def cleanup_expired_sessions(db: DbSession) -> int:
    """Remove expired sessions from database."""
    now = datetime.now(timezone.utc)
    result = db.execute(delete(Session).where(Session.expires_at < now))
    db.commit()
    return result.rowcount
