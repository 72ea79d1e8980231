"""
Per-user configuration endpoints (Firestore `userConfigs`).

- GET   /api/config            - current config (created from defaults on first call)
- PUT   /api/config            - replace the editable sections
- PATCH /api/config/{section}  - replace one section

API keys and the Supabase anon key are masked in every response. Masked
values sent back unchanged keep the stored secret.
"""

import logging
from typing import Annotated, Any, Dict

from fastapi import APIRouter, Body, Depends, HTTPException, Path, status
from pydantic import ValidationError

from backoffice.auth.dependencies import AuthenticatedUser, require_auth
from backoffice.schemas.user_config import ApiKeys, SupabaseSettings, UserConfig, UserConfigUpdate
from backoffice.services import user_config_service
from backoffice.services.errors import ServiceNotConfiguredError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/config", tags=["config"])


def _firebase_uid(auth_user: AuthenticatedUser) -> str:
    if not auth_user.firebase_uid:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "error": "invalid_request",
                "details": "Session has no Firebase user id; sign in again"
            }
        )
    return auth_user.firebase_uid


def _store_unavailable(e: ServiceNotConfiguredError) -> HTTPException:
    logger.error(f"Config store unavailable: {e}")
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail={
            "error": "config_store_unavailable",
            "details": "User configuration storage is unavailable"
        }
    )


@router.get("", response_model=UserConfig, summary="Get my configuration")
async def get_config(
    auth_user: Annotated[AuthenticatedUser, Depends(require_auth)],
) -> UserConfig:
    uid = _firebase_uid(auth_user)
    try:
        config = await user_config_service.get_or_create_user_config(uid)
    except ServiceNotConfiguredError as e:
        raise _store_unavailable(e)
    return user_config_service.mask_config(config)


@router.put("", response_model=UserConfig, summary="Replace my configuration")
async def replace_config(
    request: UserConfigUpdate,
    auth_user: Annotated[AuthenticatedUser, Depends(require_auth)],
) -> UserConfig:
    uid = _firebase_uid(auth_user)
    try:
        current = await user_config_service.get_user_config(uid)
        incoming = UserConfig(
            **request.model_dump(),
            meta=current.meta if current else user_config_service.build_default_config().meta,
        )
        saved = await user_config_service.save_user_config(
            uid, user_config_service.restore_masked_secrets(incoming, current)
        )
    except ServiceNotConfiguredError as e:
        raise _store_unavailable(e)

    logger.info(f"Config replaced for user_id={auth_user.user_id}")
    return user_config_service.mask_config(saved)


@router.patch(
    "/{section}",
    response_model=UserConfig,
    summary="Replace one configuration section",
    description="""
    `section` is one of: supabase, apis, firebase, googleSheets, server, search.
    The body is the section object in camelCase.
    """
)
async def update_section(
    auth_user: Annotated[AuthenticatedUser, Depends(require_auth)],
    section: str = Path(...),
    payload: Dict[str, Any] = Body(...),
) -> UserConfig:
    uid = _firebase_uid(auth_user)
    try:
        current = await user_config_service.get_or_create_user_config(uid)

        if section in ("apis", "supabase"):
            # Masked secrets in the body resolve to the stored values
            if section == "apis":
                candidate = current.model_copy(update={"apis": ApiKeys.model_validate(payload)})
            else:
                candidate = current.model_copy(update={"supabase": SupabaseSettings.model_validate(payload)})
            restored = user_config_service.restore_masked_secrets(candidate, current)
            payload = getattr(restored, section).model_dump(by_alias=True)

        await user_config_service.update_config_section(uid, section, payload)
        updated = await user_config_service.get_user_config(uid)
    except ValueError as e:
        # pydantic.ValidationError is a ValueError
        details = e.errors(include_url=False, include_context=False) if isinstance(e, ValidationError) else str(e)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "error": "invalid_request",
                "details": details
            }
        )
    except ServiceNotConfiguredError as e:
        raise _store_unavailable(e)

    logger.info(f"Config section '{section}' updated for user_id={auth_user.user_id}")
    return user_config_service.mask_config(updated or current)
