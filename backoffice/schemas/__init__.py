"""
Pydantic schemas for API request and response validation.

All FastAPI endpoints use explicit Pydantic models; the in-memory cache
stores the same models it returns.
"""
