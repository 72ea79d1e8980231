"""
FastAPI routers for all API endpoints.

Each module defines a router for one area (sheets, dashboard, documents,
graph, user config, auth).
"""
