"""
FastAPI HTTP Layer for feedtape-tts.

    - routes.py: /api/tts/synthesize, /api/tts/usage, /health, /metrics
    - schemas.py: Request/response Pydantic models
    - dependencies.py: FastAPI dependency injection
"""
