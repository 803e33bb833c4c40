#!/usr/bin/env python3
# backend/run.py
"""
Development server runner for the appointments API.

Uses DATABASE_URL from the environment or backend/.env, falling back to a
local SQLite file.
"""
import os
from pathlib import Path
import sys

backend_dir = Path(__file__).parent
sys.path.insert(0, str(backend_dir))
os.chdir(backend_dir)

import uvicorn

if __name__ == "__main__":
    port = int(os.getenv("PORT", "8000"))
    print(f"Starting appointments API at http://localhost:{port}")
    print(f"API Docs: http://localhost:{port}/docs")

    uvicorn.run("appointments.main:app", host="0.0.0.0", port=port, reload=True, log_level="info")
