"""
Data access layer for the back-office backend.

Includes:
- Supabase client factory (document search)
- Firebase Admin / Firestore (per-user configuration)
- MemStorage, the in-memory cache mirroring Google Sheets tabs
"""

from .client import get_supabase_client
from .storage import MemStorage, get_storage

__all__ = ["get_supabase_client", "MemStorage", "get_storage"]
