from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api import health, messages, parse
from .config import settings
from .logging_config import setup_logging
from .middleware import RequestLoggingMiddleware

setup_logging()

# Create FastAPI app
app = FastAPI(
    title="CryptoFace API",
    description="Natural-language prompts to signed blockchain transfers",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(health.router, tags=["Health"])
app.include_router(parse.router, tags=["Parse"])
app.include_router(messages.router, tags=["Messages"])


@app.get("/")
async def root():
    """Root endpoint with basic info"""
    return {
        "name": "CryptoFace API",
        "version": "0.1.0",
        "description": "Natural-language prompts to signed blockchain transfers",
        "docs": "/docs",
        "health": "/healthz"
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "cryptoface.main:app",
        host=settings.host,
        port=settings.port,
        reload=True,
        log_level=settings.log_level.lower()
    )
