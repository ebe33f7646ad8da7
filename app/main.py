from contextlib import asynccontextmanager

import logfire
import sentry_sdk
from fastapi import FastAPI

from app.core.config import settings
from app.core.database import create_db_and_tables
from app.core.logging import get_logger, setup_logging
from app.zoho.api import get_zoho_client
from app.zoho.views import router as zoho_router

logger = get_logger('portal_sync')

# Initialize Logfire
if settings.logfire_token:
    logfire.configure(token=settings.logfire_token)

# Initialize Sentry
if settings.sentry_dsn:
    sentry_sdk.init(dsn=settings.sentry_dsn, traces_sample_rate=1.0)

setup_logging()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifespan (startup and shutdown)"""
    logger.info('Starting Portal Sync application')
    if settings.dev_mode:
        create_db_and_tables()
    yield
    logger.info('Shutting down Portal Sync application')
    get_zoho_client().close()


app = FastAPI(
    title='Portal Sync',
    description='Syncs portal records with Zoho CRM',
    version='1.0.0',
    lifespan=lifespan,
)

# Instrument with Logfire
logfire.instrument_fastapi(app)


@app.get('/')
def root():
    """Health check endpoint"""
    return {'status': 'ok', 'app': 'Portal Sync', 'version': '1.0.0'}


@app.get('/health')
def health():
    """Health check endpoint"""
    return {'status': 'healthy'}


app.include_router(zoho_router)
