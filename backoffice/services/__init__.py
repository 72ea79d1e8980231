"""
Service layer: Google Sheets, Supabase document search, LLM helpers,
correspondence graph and per-user configuration.

Services raise the exceptions in services.errors; routes map them to
HTTP responses.
"""
