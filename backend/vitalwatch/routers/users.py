"""User provisioning API endpoints."""
from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..dependencies import get_current_user
from ..models import User
from ..schemas.website import UserUpsert, UserResponse
from ..utils.db_utils import retry_on_lock, utcnow

router = APIRouter(prefix="/api/users", tags=["users"])


@router.post("", response_model=UserResponse)
async def upsert_user(data: UserUpsert, db: AsyncSession = Depends(get_db)):
    """Create or update a user keyed by the identity provider's open_id."""
    result = await db.execute(select(User).where(User.open_id == data.open_id))
    user = result.scalar_one_or_none()

    if user is None:
        user = User(open_id=data.open_id, name=data.name, email=data.email)
        db.add(user)
    else:
        # Only overwrite fields the caller sent
        if data.name is not None:
            user.name = data.name
        if data.email is not None:
            user.email = data.email
        user.last_signed_in = utcnow()

    await retry_on_lock(db.commit)
    await db.refresh(user)
    return UserResponse.model_validate(user)


@router.get("/me", response_model=UserResponse)
async def get_me(user: User = Depends(get_current_user)):
    """Get the calling user."""
    return UserResponse.model_validate(user)
