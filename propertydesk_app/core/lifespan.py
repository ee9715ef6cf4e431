import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from fintechs.tahseeel import TahseeelClient

from .get_db import database

logger = logging.getLogger("startup")


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Waiting for application startup...")

    try:
        database.connect()
        logger.info("Database connected.")
    except Exception:
        logger.exception("Database connection failed")
        raise

    if not TahseeelClient().is_configured:
        logger.warning("Tahseeel credentials are not set; payment links are disabled.")

    logger.info("Application startup complete.")

    yield

    try:
        await database.dispose()
    except Exception:
        logger.exception("Failed to dispose database engine")
