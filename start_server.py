"""
Start the Game Day Ops backend for local development
"""
import sys

import uvicorn

from app.core.config import settings

if __name__ == "__main__":
    print("Starting Game Day Ops Backend...")
    print(f"Python: {sys.version}")
    print(f"Embedding sync mode: {settings.embedding_sync_mode}")
    if not settings.gemini_configured:
        print("GEMINI_API_KEY is not set; the assistant will answer with 503")

    try:
        uvicorn.run(
            "app.main:app",
            host="127.0.0.1",
            port=8000,
            reload=True,
            log_level=settings.log_level.lower(),
        )
    except KeyboardInterrupt:
        print("\nServer stopped by user")
