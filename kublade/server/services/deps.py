"""
Common Dependencies.

Annotated aliases for the dependencies most endpoints need.
"""

from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from kublade.core.database import get_session
from kublade.core.database.entities.users import User
from kublade.server.middleware.guards import get_current_user

SessionDep = Annotated[AsyncSession, Depends(get_session)]
CurrentUser = Annotated[User, Depends(get_current_user)]
