import logging
import os

from fastapi import FastAPI
from contextlib import asynccontextmanager
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from app.core.logging_config import setup_logging
from app.db.init_db import create_database
from app.db.base import Base
from app.db.session import engine
from app.core.config import settings
from app.api.v1.router import api_router

setup_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: Ensure DB exists and create tables
    create_database()
    Base.metadata.create_all(bind=engine)
    logger.info("%s started", settings.PROJECT_NAME)
    yield


app = FastAPI(title=settings.PROJECT_NAME, debug=settings.DEBUG, lifespan=lifespan)

# Set all CORS enabled origins
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router, prefix=settings.API_V1_STR)

# Booking QR codes are served from the same prefix the services hand out
os.makedirs(settings.QR_CODE_DIR, exist_ok=True)
app.mount(settings.QR_CODE_URL_PREFIX, StaticFiles(directory=settings.QR_CODE_DIR), name="qrcodes")

@app.get("/health")
def health() -> dict:
    return {"status": "ok"}
