from fastapi import FastAPI, APIRouter
from starlette.middleware.cors import CORSMiddleware
import logging

from config import client, CORS_ORIGINS, LOG_LEVEL, DB_NAME
from routes import auth, leads, sales, event_log
from services.document_store import get_store, ensure_indexes
from services.event_logger import flush_events


# Configure logging
logging.basicConfig(
    level=getattr(logging, LOG_LEVEL.upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# Create the main app without a prefix
app = FastAPI(title="Lead Tracker")

# Create a router with the /api prefix
api_router = APIRouter(prefix="/api")


@api_router.get("/")
async def root():
    return {"message": "Lead Tracker API"}


api_router.include_router(auth.router)
api_router.include_router(leads.router)
api_router.include_router(sales.router)
api_router.include_router(event_log.router)

# Include the router in the main app
app.include_router(api_router)

app.add_middleware(
    CORSMiddleware,
    allow_credentials=True,
    allow_origins=CORS_ORIGINS.split(','),
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
async def startup():
    logger.info(f"[CONFIG] Using database: {DB_NAME}")
    await ensure_indexes(get_store())


@app.on_event("shutdown")
async def shutdown_db_client():
    await flush_events()
    client.close()
