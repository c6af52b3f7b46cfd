from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from app.config.database import close_db, init_db
from app.config.settings import settings
from app.routes import chat, conversations, health, records, suggestions

@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Starting {settings.PROJECT_NAME}...")
    await init_db()
    logger.info(f"{settings.PROJECT_NAME} started successfully")
    yield
    logger.info(f"Shutting down {settings.PROJECT_NAME}...")
    await close_db()
    logger.info(f"{settings.PROJECT_NAME} shut down successfully")

# Create FastAPI app
app = FastAPI(
    title=settings.PROJECT_NAME,
    description="AI career coaching chat with context-aware prompts and reviewable profile suggestions",
    version=settings.VERSION,
    lifespan=lifespan,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.BACKEND_CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(chat.router, prefix=f"{settings.API_V1_STR}/chat", tags=["chat"])
app.include_router(conversations.router, prefix=f"{settings.API_V1_STR}/conversations", tags=["conversations"])
app.include_router(suggestions.router, prefix=f"{settings.API_V1_STR}/suggestions", tags=["suggestions"])
app.include_router(records.router, prefix=settings.API_V1_STR, tags=["records"])
app.include_router(health.router, prefix="/health", tags=["health"])
