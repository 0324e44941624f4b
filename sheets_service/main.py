"""
Registration Sheet Service

FastAPI application that generates per-applicant registration sheets (PDF) for
Mapas Culturais multi-phase opportunities.
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from sheets_service.api import sheets_router
from sheets_service.core import settings

app = FastAPI(
    title=settings.APP_NAME,
    description="Batch generation of registration sheets for multi-phase opportunities",
    version="1.0.0",
    docs_url="/api/docs",
    redoc_url="/redoc"
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API routers
app.include_router(sheets_router)
