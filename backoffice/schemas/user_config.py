"""
Pydantic schemas for per-user configuration.

UserConfig documents live in the Firestore `userConfigs` collection, keyed
by Firebase uid. The stored shape is camelCase (shared with the web
client); models accept and emit camelCase and are addressed in Python by
their snake_case names.
"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

CONFIG_VERSION = "1.0.0"

ConfigSection = Literal["supabase", "apis", "firebase", "googleSheets", "server", "search"]


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SupabaseSettings(_CamelModel):
    url: str = ""
    anon_key: str = ""


class ApiKeys(_CamelModel):
    openai: str = ""
    deepseek: str = ""


class FirebaseSettings(_CamelModel):
    api_key: str = ""
    auth_domain: str = ""
    project_id: str = ""
    app_id: str = ""
    measurement_id: Optional[str] = None


class GoogleSheetsSettings(_CamelModel):
    client_id: str = ""
    project_id: str = ""
    spreadsheet_id: str = ""


class ServerSettings(_CamelModel):
    api_base_url: str = ""


class SearchSettings(_CamelModel):
    """Search tuning knobs exposed as sliders in the UI."""
    enable_ai: bool = Field(True, alias="enableAI")
    vector_threshold: float = Field(0.3, ge=0.0, le=1.0)
    vector_weight: float = Field(0.3, ge=0.0, le=1.0)
    text_weight: float = Field(0.7, ge=0.0, le=1.0)
    text_score_method: Literal["overlap", "simple"] = "overlap"


class ConfigMeta(_CamelModel):
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    version: str = CONFIG_VERSION


class UserConfig(_CamelModel):
    """Complete per-user configuration document."""
    supabase: SupabaseSettings = Field(default_factory=SupabaseSettings)
    apis: ApiKeys = Field(default_factory=ApiKeys)
    firebase: Optional[FirebaseSettings] = None
    google_sheets: Optional[GoogleSheetsSettings] = None
    server: Optional[ServerSettings] = None
    search: SearchSettings = Field(default_factory=SearchSettings)
    meta: ConfigMeta = Field(default_factory=ConfigMeta)


class UserConfigUpdate(_CamelModel):
    """Full replacement of the editable sections (meta is managed server-side)."""
    supabase: SupabaseSettings = Field(default_factory=SupabaseSettings)
    apis: ApiKeys = Field(default_factory=ApiKeys)
    firebase: Optional[FirebaseSettings] = None
    google_sheets: Optional[GoogleSheetsSettings] = None
    server: Optional[ServerSettings] = None
    search: SearchSettings = Field(default_factory=SearchSettings)


# Section name (wire form) -> model used to validate a PATCH body
SECTION_MODELS = {
    "supabase": SupabaseSettings,
    "apis": ApiKeys,
    "firebase": FirebaseSettings,
    "googleSheets": GoogleSheetsSettings,
    "server": ServerSettings,
    "search": SearchSettings,
}
