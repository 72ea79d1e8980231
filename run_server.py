"""
Start a local development server.

Prints the main endpoints and runs the API with auto-reload.
"""

import uvicorn

from backoffice.config import settings

if __name__ == "__main__":
    base_url = f"http://localhost:{settings.PORT}"

    print("=" * 60)
    print("Starting Back-office Backend")
    print("=" * 60)
    print()
    print("📌 API Endpoints:")
    print(f"   - Health Check:  GET  {base_url}/health")
    print(f"   - Sheets:        GET  {base_url}/api/sheets")
    print(f"   - Dashboard:     GET  {base_url}/api/dashboard")
    print(f"   - Search:        POST {base_url}/api/documents/search")
    print(f"   - Graph:         GET  {base_url}/api/graph/<letter-no>")
    print(f"   - API Docs:           {base_url}/docs")
    print()
    print("🔐 Authentication:")
    print("   All endpoints (except /health and /api/auth/*) require a session")
    print("   cookie from POST /api/auth/session, or:")
    print("   Authorization: Bearer <firebase-id-token>")
    print()
    print("📝 Test with curl:")
    print(f'   curl -X POST "{base_url}/api/documents/search" \\')
    print('     -H "Authorization: Bearer <firebase-id-token>" \\')
    print('     -H "Content-Type: application/json" \\')
    print('     -d \'{"query": "beton dökümü", "enable_ai": false}\'')
    print()
    print("=" * 60)
    print(f"Starting server on {base_url}")
    print("Press Ctrl+C to stop")
    print("=" * 60)
    print()

    uvicorn.run(
        "backoffice.main:app",
        host="0.0.0.0",
        port=settings.PORT,
        reload=settings.is_development(),
        log_level=settings.LOG_LEVEL.lower()
    )
