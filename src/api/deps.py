"""Common FastAPI dependencies for API endpoints."""

from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.auth import ClerkAuth, get_clerk_auth, get_clerk_id, get_current_user
from src.db import get_db
from src.models.user import User

# Type aliases for cleaner endpoint signatures
DbSession = Annotated[AsyncSession, Depends(get_db)]
ClerkId = Annotated[str, Depends(get_clerk_id)]
ClerkClient = Annotated[ClerkAuth, Depends(get_clerk_auth)]
CurrentUser = Annotated[User, Depends(get_current_user)]
