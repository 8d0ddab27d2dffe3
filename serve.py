#!/usr/bin/env python3
"""Run the Pharmacy Finder API under uvicorn (auto-reload outside production)."""
import os
import uvicorn

if __name__ == "__main__":
    production = os.environ.get("ENV") == "production"
    default_host = "0.0.0.0" if production else "127.0.0.1"
    default_port = 3004 if production else 8000
    uvicorn.run(
        "pharmacy_finder.api.app:app",
        host=os.environ.get("HOST", default_host),
        port=int(os.environ.get("PORT", default_port)),
        reload=not production,
        log_level=os.environ.get("LOG_LEVEL", "info").lower(),
    )
