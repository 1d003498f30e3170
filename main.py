#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
Main application entry point - Cohere chat API exposed in OpenAI format
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI

from cohere_openai.config import settings
from cohere_openai.openai_api import router as openai_router
from cohere_openai.services.network_manager import network_manager


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    await network_manager.cleanup_clients()


# Create FastAPI app
app = FastAPI(
    title="OpenAI Compatible API Server",
    description="OpenAI-compatible API server for the Cohere chat API",
    version="1.0.0-dev",
    lifespan=lifespan,
)


@app.get("/health")
async def health():
    """Health check endpoint"""
    return {"status": "healthy"}


# Include API router（通配路由，需最后注册）
app.include_router(openai_router)


if __name__ == "__main__":
    import uvicorn
    import os
    import platform
    import multiprocessing

    if platform.system() == "Windows":
        workers = 1
    else:
        # (2 × CPU核心数) + 1，环境变量可覆盖
        cpu_count = multiprocessing.cpu_count()
        default_workers = (2 * cpu_count) + 1
        workers = int(os.getenv("UVICORN_WORKERS", str(default_workers)))

    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=settings.LISTEN_PORT,
        workers=workers,
        http="httptools",
        reload=False,
        log_level="info",
    )
