"""
Web presentation layer for the gmdash dashboard.

Architectural Intent:
- Serves the built browser bundle from one origin
- Answers health checks for the hosting platform
- Reverse-proxies /api/n8n/* so browser fetches avoid cross-origin restrictions
- Uses Python stdlib only (http.server + http.client)
"""
