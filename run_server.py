#!/usr/bin/env python3
"""
Simple server launcher
"""
import shutil

import uvicorn

from src.providers.registry import build_provider_registry
from src.utils.config import settings

if __name__ == "__main__":
    registry = build_provider_registry(settings)

    print("=" * 70)
    print(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")
    print("=" * 70)
    for capability, providers in registry.status().items():
        configured = [name for name, ok in providers.items() if ok] or ["none"]
        print(f"* {capability}: {', '.join(configured)}")
    if not registry.has_llm:
        print("\nWARNING: no language-model API key configured; analyses will return 503.")
    if not shutil.which("ffmpeg"):
        print("\nWARNING: ffmpeg not found on PATH; video analysis will fail.")
    print(f"\n* Port: {settings.PORT}")
    print("* Configuration: .env")
    print("\nStarting server...\n")

    uvicorn.run(
        "src.api.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.RELOAD,
        log_level=settings.LOG_LEVEL.lower()
    )
