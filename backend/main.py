"""FastAPI application serving the Mindful services over HTTP."""

import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# Load environment variables
env_path = Path(__file__).parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

from backend.api.routes import router

logging.basicConfig(
    level=os.getenv("MINDFUL_LOG_LEVEL", "INFO").upper(),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

API_VERSION = "0.1.0"

# Comma separated; "*" allows any origin
CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv("MINDFUL_CORS_ORIGINS", "*").split(",")
    if origin.strip()
]


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Mindful API {API_VERSION} starting, docs at /docs")
    yield
    logger.info("Mindful API stopped")


app = FastAPI(
    title="Mindful API",
    description="Completion, transcription and synthesis services for the Mindful client",
    version=API_VERSION,
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(router)


@app.get("/")
async def root():
    return {
        "message": "Mindful API",
        "version": API_VERSION,
        "docs": "/docs",
        "health": "/api/health"
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "backend.main:app",
        host=os.getenv("MINDFUL_API_HOST", "0.0.0.0"),
        port=int(os.getenv("MINDFUL_API_PORT", "8000")),
        log_level=os.getenv("MINDFUL_LOG_LEVEL", "info").lower()
    )
