"""Monthly document quota: lazy user creation, rolling reset, check and increment."""

from datetime import datetime, timedelta, timezone

from sqlalchemy import update
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exceptions import QuotaExceededError
from app.core.logging_config import get_logger
from app.models.user import User

logger = get_logger(__name__)

QUOTA_EXCEEDED_MESSAGE = "Monthly upload limit reached"


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes even for timezone-aware columns
    return value.replace(tzinfo=timezone.utc) if value.tzinfo is None else value


def get_user_by_clerk_id(db: Session, clerk_id: str) -> User | None:
    return db.query(User).filter(User.clerk_id == clerk_id).first()


def get_or_create_user(
    db: Session,
    clerk_id: str,
    default_email: str | None = None,
    default_name: str | None = None,
) -> User:
    """Return the user for an external id, creating one with a fresh quota if absent."""
    user = get_user_by_clerk_id(db, clerk_id)
    if user:
        return user

    user = User(
        clerk_id=clerk_id,
        email=default_email or f"user-{clerk_id}@example.com",
        name=default_name or "User",
        documents_used=0,
        monthly_limit=settings.default_monthly_limit,
        last_reset=datetime.now(timezone.utc),
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info(f"Created user {user.id} for clerk_id={clerk_id}")
    return user


def maybe_reset(db: Session, user: User, now: datetime | None = None) -> User:
    """Zero the counter once the quota window has fully elapsed since the last reset."""
    now = now or datetime.now(timezone.utc)
    if now - _as_utc(user.last_reset) >= timedelta(days=settings.quota_window_days):
        logger.info(f"Resetting monthly quota for user {user.id} (used={user.documents_used})")
        user.documents_used = 0
        user.last_reset = now
        db.commit()
        db.refresh(user)
    return user


def check_and_reserve(user: User) -> None:
    """Fail fast before any extraction or generation cost is spent."""
    if user.documents_used >= user.monthly_limit:
        logger.warning(
            f"Quota exceeded for user {user.id} ({user.documents_used}/{user.monthly_limit})"
        )
        raise QuotaExceededError(QUOTA_EXCEEDED_MESSAGE)


def increment(db: Session, user: User) -> None:
    """
    Charge one document to the user inside the caller's transaction.

    The UPDATE only matches while the user is still under their limit, so two
    concurrent uploads that both passed ``check_and_reserve`` cannot push the
    counter past ``monthly_limit``. The caller commits; on failure the caller's
    pending writes are rolled back and ``QuotaExceededError`` is raised.
    """
    result = db.execute(
        update(User)
        .where(User.id == user.id, User.documents_used < User.monthly_limit)
        .values(documents_used=User.documents_used + 1)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        db.rollback()
        logger.warning(f"Quota filled concurrently for user {user.id}; discarding upload")
        raise QuotaExceededError(QUOTA_EXCEEDED_MESSAGE)
