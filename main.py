#!/usr/bin/env python3
import os

import uvicorn
from app.app import create_app

# Reload only in development mode
is_dev_mode = os.getenv("JREIT_DEV_MODE", "false").lower() == "true"

app = create_app()


if __name__ == "__main__":
    host = os.getenv("JREIT_HOST", "0.0.0.0")
    port = int(os.getenv("JREIT_PORT", "8000"))

    print(f"Starting J-REIT search service on {host}:{port}")
    print(f"Development mode: {is_dev_mode}")

    uvicorn.run("main:app", host=host, port=port, reload=is_dev_mode)
