#!/usr/bin/env python3
"""Serve the check-in API with Uvicorn (settings from the environment / .env)."""

import os

import uvicorn
from dotenv import load_dotenv

PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))


def _flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("true", "1", "t")


def main() -> None:
    load_dotenv(os.path.join(PROJECT_ROOT, ".env"))

    host = os.getenv("APP_HOST", "127.0.0.1")
    port = int(os.getenv("APP_PORT", "8000"))
    reload = _flag("APP_RELOAD", "False")
    log_level = os.getenv("APP_LOG_LEVEL", "info")

    print(f"Starting check-in API on {host}:{port} (reload={reload}, log level={log_level})")

    uvicorn.run(
        "main:app",
        host=host,
        port=port,
        reload=reload,
        log_level=log_level,
        app_dir=PROJECT_ROOT,
        reload_dirs=[PROJECT_ROOT] if reload else None,
    )


if __name__ == "__main__":
    main()
