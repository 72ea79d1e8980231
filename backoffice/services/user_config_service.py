"""
User configuration service (Firestore `userConfigs` collection).

Each signed-in user has one document keyed by their Firebase uid holding
their Supabase project, API keys, optional Firebase / Google Sheets /
server settings, and search tuning. Documents are stored in the camelCase
shape shared with the web client.

New documents are seeded from the server environment so a fresh account
works out of the box.
"""

import functools
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from google.api_core.exceptions import GoogleAPIError
from google.auth.exceptions import GoogleAuthError
from pydantic import BaseModel

from backoffice.config import settings
from backoffice.db.firebase_app import get_firestore_client
from backoffice.schemas.user_config import (
    CONFIG_VERSION,
    SECTION_MODELS,
    ApiKeys,
    ConfigMeta,
    FirebaseSettings,
    GoogleSheetsSettings,
    SearchSettings,
    ServerSettings,
    SupabaseSettings,
    UserConfig,
)
from backoffice.services.errors import ServiceNotConfiguredError
from backoffice.utils.logging import mask_secret

logger = logging.getLogger(__name__)

COLLECTION_NAME = "userConfigs"


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _doc_ref(user_id: str, db=None):
    db = db or get_firestore_client()
    return db.collection(COLLECTION_NAME).document(user_id)


def _firestore_call(func):
    """Re-raise Firestore transport and credential failures as ServiceNotConfiguredError."""
    @functools.wraps(func)
    async def wrapper(*args, **kwargs):
        try:
            return await func(*args, **kwargs)
        except (GoogleAPIError, GoogleAuthError) as e:
            logger.error(f"Firestore call {func.__name__} failed: {type(e).__name__}")
            raise ServiceNotConfiguredError(f"Config store unavailable: {e}") from e
    return wrapper


def _to_firestore(model: BaseModel) -> Dict[str, Any]:
    return model.model_dump(by_alias=True, exclude_none=True)


def _firebase_from_env() -> FirebaseSettings:
    return FirebaseSettings(
        api_key=settings.FIREBASE_API_KEY,
        auth_domain=settings.FIREBASE_AUTH_DOMAIN,
        project_id=settings.FIREBASE_PROJECT_ID,
        app_id=settings.FIREBASE_APP_ID,
        measurement_id=settings.FIREBASE_MEASUREMENT_ID,
    )


def _google_sheets_from_env() -> GoogleSheetsSettings:
    return GoogleSheetsSettings(
        client_id=settings.GOOGLE_SHEETS_CLIENT_ID,
        project_id=settings.GOOGLE_SHEETS_PROJECT_ID,
        spreadsheet_id=settings.GOOGLE_SPREADSHEET_ID,
    )


def build_default_config(now: Optional[datetime] = None) -> UserConfig:
    """Defaults plus whatever the server environment provides."""
    now = now or _now()
    return UserConfig(
        supabase=SupabaseSettings(url=settings.SUPABASE_URL, anon_key=settings.SUPABASE_ANON_KEY),
        apis=ApiKeys(openai=settings.OPENAI_API_KEY, deepseek=settings.DEEPSEEK_API_KEY),
        firebase=_firebase_from_env(),
        google_sheets=_google_sheets_from_env(),
        server=ServerSettings(api_base_url=settings.API_BASE_URL),
        search=SearchSettings(),
        meta=ConfigMeta(created_at=now, updated_at=now, version=CONFIG_VERSION),
    )


@_firestore_call
async def get_user_config(user_id: str, db=None) -> Optional[UserConfig]:
    """Load a user's config, or None when they have none yet."""
    snapshot = _doc_ref(user_id, db).get()
    if not snapshot.exists:
        return None

    config = UserConfig.model_validate(snapshot.to_dict() or {})
    logger.debug(
        f"Config loaded for user_id={user_id}: "
        f"supabase={bool(config.supabase.url)}, "
        f"apis={bool(config.apis.openai or config.apis.deepseek)}"
    )
    return config


@_firestore_call
async def save_user_config(user_id: str, config: UserConfig, db=None) -> UserConfig:
    """Write the full document, bumping meta.updated_at."""
    saved = config.model_copy(update={"meta": config.meta.model_copy(update={"updated_at": _now()})})
    _doc_ref(user_id, db).set(_to_firestore(saved))
    logger.info(f"Config saved for user_id={user_id}")
    return saved


async def create_default_user_config(user_id: str, db=None) -> UserConfig:
    config = build_default_config()
    saved = await save_user_config(user_id, config, db)
    logger.info(f"Default config created for user_id={user_id}")
    return saved


@_firestore_call
async def update_user_config(user_id: str, updates: Dict[str, Any], db=None) -> None:
    """
    Partial update of top-level sections.

    Args:
        updates: Section name (camelCase wire form) -> section payload
    """
    _doc_ref(user_id, db).update({**updates, "meta.updatedAt": _now()})


async def update_config_section(user_id: str, section: str, payload: Dict[str, Any], db=None) -> BaseModel:
    """
    Validate and store one section (apis, supabase, googleSheets, firebase, server, search).

    Raises:
        ValueError: For an unknown section name.
        pydantic.ValidationError: If the payload does not fit the section.
    """
    model = SECTION_MODELS.get(section)
    if model is None:
        raise ValueError(f"Unknown config section: {section}")

    value = model.model_validate(payload)
    await update_user_config(user_id, {section: _to_firestore(value)}, db)
    return value


async def config_exists(user_id: str, db=None) -> bool:
    try:
        return _doc_ref(user_id, db).get().exists
    except Exception as e:
        logger.error(f"Config existence check failed for user_id={user_id}: {e}")
        return False


async def enhance_existing_config(user_id: str, db=None) -> Optional[UserConfig]:
    """
    Fill missing firebase / googleSheets / server sections from the environment.

    Sections are only filled when the environment has a value to offer.
    """
    config = await get_user_config(user_id, db)
    if config is None:
        return None

    updates: Dict[str, Any] = {}

    if not (config.firebase and config.firebase.api_key) and settings.FIREBASE_API_KEY:
        updates["firebase"] = _firebase_from_env()
    if not (config.google_sheets and config.google_sheets.client_id) and settings.GOOGLE_SHEETS_CLIENT_ID:
        updates["google_sheets"] = _google_sheets_from_env()
    if not (config.server and config.server.api_base_url) and settings.API_BASE_URL:
        updates["server"] = ServerSettings(api_base_url=settings.API_BASE_URL)

    if not updates:
        return config

    logger.info(f"Filling config sections from environment for user_id={user_id}: {sorted(updates)}")
    return await save_user_config(user_id, config.model_copy(update=updates), db)


async def get_or_create_user_config(user_id: str, db=None) -> UserConfig:
    config = await enhance_existing_config(user_id, db)
    if config is not None:
        return config
    return await create_default_user_config(user_id, db)


# --- Secret masking for API responses ---

def mask_config(config: UserConfig) -> UserConfig:
    """Copy of the config with API keys and the Supabase key masked."""
    return config.model_copy(update={
        "apis": ApiKeys(
            openai=mask_secret(config.apis.openai),
            deepseek=mask_secret(config.apis.deepseek),
        ),
        "supabase": config.supabase.model_copy(
            update={"anon_key": mask_secret(config.supabase.anon_key)}
        ),
    })


def _keep_if_masked(incoming: str, current: str) -> str:
    # Clients echo back the masked value when the user did not edit a key
    if incoming and current and incoming == mask_secret(current):
        return current
    return incoming


def restore_masked_secrets(incoming: UserConfig, current: Optional[UserConfig]) -> UserConfig:
    """Replace masked placeholders in an update with the stored secrets."""
    if current is None:
        return incoming

    return incoming.model_copy(update={
        "apis": ApiKeys(
            openai=_keep_if_masked(incoming.apis.openai, current.apis.openai),
            deepseek=_keep_if_masked(incoming.apis.deepseek, current.apis.deepseek),
        ),
        "supabase": incoming.supabase.model_copy(update={
            "anon_key": _keep_if_masked(incoming.supabase.anon_key, current.supabase.anon_key)
        }),
    })
