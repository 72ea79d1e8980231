"""
Exceptions raised by the service layer.

Routes translate these into HTTPException responses with the
`{"error": ..., "details": ...}` detail shape.
"""


class ServiceNotConfiguredError(RuntimeError):
    """An external service (Supabase, OpenAI, DeepSeek, Sheets, Firebase) has no credentials."""


class GoogleSheetsError(RuntimeError):
    """A Google Sheets API call failed."""


class DocumentSearchError(RuntimeError):
    """A Supabase document query failed."""


class EmbeddingError(RuntimeError):
    """Embedding generation failed."""


class GraphBuildError(RuntimeError):
    """The correspondence graph could not be built."""
