#!/usr/bin/env python
"""Start the FastAPI application with proper port configuration."""
import uvicorn

from inventory_tracker.core.config import get_settings

if __name__ == "__main__":
    settings = get_settings()

    print(f"Starting application on port {settings.PORT}")

    uvicorn.run(
        "inventory_tracker.main:app",
        host="0.0.0.0",
        port=settings.PORT,
        log_level=settings.LOG_LEVEL.lower()
    )
