"""
Per-request dependencies shared by the document and graph routers.

A signed-in user's searches run against their own Supabase project and
API keys (from their Firestore UserConfig). When Firestore is not
configured the server-wide environment values are used instead.
"""

import logging
from typing import Annotated

from fastapi import Depends, HTTPException, status
from supabase import Client

from backoffice.auth.dependencies import AuthenticatedUser, require_auth
from backoffice.db.client import SupabaseConfigError, get_supabase_client
from backoffice.schemas.user_config import UserConfig
from backoffice.services.errors import ServiceNotConfiguredError
from backoffice.services.search_service import SearchContext
from backoffice.services.user_config_service import (
    build_default_config,
    get_or_create_user_config,
)

logger = logging.getLogger(__name__)


async def get_current_user_config(
    auth_user: Annotated[AuthenticatedUser, Depends(require_auth)],
) -> UserConfig:
    """The caller's UserConfig, or environment defaults without Firestore."""
    if not auth_user.firebase_uid:
        return build_default_config()

    try:
        return await get_or_create_user_config(auth_user.firebase_uid)
    except ServiceNotConfiguredError as e:
        logger.warning(f"Firestore unavailable, using environment config: {e}")
        return build_default_config()


def supabase_client_for(config: UserConfig) -> Client:
    """
    Supabase client for the user's project.

    Raises:
        HTTPException: 400 if the project URL or key is missing or invalid.
    """
    try:
        return get_supabase_client(config.supabase.url, config.supabase.anon_key)
    except SupabaseConfigError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "error": "supabase_not_configured",
                "details": str(e)
            }
        )


async def get_search_context(
    config: Annotated[UserConfig, Depends(get_current_user_config)],
) -> SearchContext:
    return SearchContext(
        supabase_client=supabase_client_for(config),
        openai_api_key=config.apis.openai,
        deepseek_api_key=config.apis.deepseek,
        search_settings=config.search,
    )
