"""
Profile endpoint - the signed-in user and their credit balance.
"""

import structlog
from fastapi import APIRouter, Depends

from copysensei.api.deps import (
    CurrentUser,
    get_current_user,
    get_local_store,
    get_remote_data_service,
    to_http_error,
)
from copysensei.core.cache import LocalCacheStore
from copysensei.core.exceptions import CopySenseiError
from copysensei.core.observability import set_user_context
from copysensei.services.remote_data import RemoteDataService

logger = structlog.get_logger(__name__)

router = APIRouter(tags=["profile"])


@router.get("/me")
async def get_me(
    user: CurrentUser = Depends(get_current_user),
    store: LocalCacheStore = Depends(get_local_store),
    remote: RemoteDataService = Depends(get_remote_data_service),
) -> dict:
    """
    Current user with their credit balance.

    The database balance is authoritative when one is configured; the local
    copy is refreshed from it.
    """
    set_user_context(user.id, user.email)

    if remote.has_database:
        try:
            await store.set_user(await remote.load_user(user.id, user.email))
        except CopySenseiError as e:
            raise to_http_error(e)

    record = await store.get_user()
    projects = await store.get_projects()
    return {
        **record.to_cache(),
        "projectCount": len(projects),
        "currentProjectId": await store.get_current_project_id(),
    }
