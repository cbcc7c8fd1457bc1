"""Request dependencies shared by the API routers."""
from fastapi import Depends, Header, HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from .database import get_db
from .models import User, Website


async def get_current_user(
    x_user_id: int | None = Header(None),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Resolve the caller from the X-User-Id header set by the auth proxy."""
    if x_user_id is None:
        raise HTTPException(status_code=401, detail="Missing X-User-Id header")
    user = await db.get(User, x_user_id)
    if not user:
        raise HTTPException(status_code=401, detail="Unknown user")
    return user


async def load_owned_website(db: AsyncSession, website_id: int, user: User) -> Website:
    """Website owned by ``user``; other users' websites look missing."""
    result = await db.execute(
        select(Website).where(Website.id == website_id, Website.user_id == user.id)
    )
    website = result.scalar_one_or_none()
    if not website:
        raise HTTPException(status_code=404, detail="Website not found")
    return website


_dispatcher = None


def get_dispatcher():
    """Dispatcher used for externally triggered dispatch cycles."""
    global _dispatcher
    if _dispatcher is None:
        from .database import async_session
        from .services.dispatcher import NotificationDispatcher, SmtpMailTransport

        _dispatcher = NotificationDispatcher(async_session, SmtpMailTransport(async_session))
    return _dispatcher


def get_llm_client():
    """LLM client used for on-demand analysis."""
    from .services.llm_client import llm_client

    return llm_client
