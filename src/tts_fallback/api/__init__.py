"""
FastAPI REST API Layer for tts-fallback.

    - routes.py: Speech control endpoints (/v1/speak, /v1/status, /health, /metrics, ...)
    - schemas.py: Request/response Pydantic models
    - dependencies.py: Access to the app's orchestrator and status board
"""
