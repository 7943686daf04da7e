import logging
import sys
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from pilllog.core.config import settings
from pilllog.core.database import SessionLocal, init_db

# Configure logging
logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)
logger = logging.getLogger(__name__)
from pilllog.domains.medications.kfda_client import get_drug_registry_client
from pilllog.domains.medications.router import router as medications_router
from pilllog.domains.symptoms.router import router as symptoms_router
from pilllog.domains.uploads.processor import UploadProcessor, UploadWorkerPool
from pilllog.domains.uploads.router import router as uploads_router
from pilllog.domains.uploads.vision_client import get_vision_client
from pilllog.domains.users.service import UsersService


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    with SessionLocal() as db:
        UsersService(db).ensure_user(settings.DEMO_USER_ID, settings.DEMO_USERNAME)

    processor = UploadProcessor(session_factory=SessionLocal, vision_client=get_vision_client())
    pool = UploadWorkerPool(
        processor,
        workers=settings.UPLOAD_WORKER_COUNT,
        max_queue_size=settings.UPLOAD_QUEUE_SIZE,
    )
    pool.start()
    app.state.upload_worker_pool = pool

    yield

    pool.stop()
    get_vision_client().close()
    get_drug_registry_client().close()


app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.VERSION,
    openapi_url=f"{settings.API_PREFIX}/openapi.json",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Health check endpoint
@app.get("/health")
async def health_check():
    return {"status": "healthy"}


# Domain routers
app.include_router(
    medications_router,
    prefix=f"{settings.API_PREFIX}/medications",
    tags=["medications"],
)
app.include_router(
    symptoms_router,
    prefix=f"{settings.API_PREFIX}/symptoms",
    tags=["symptoms"],
)
app.include_router(
    uploads_router,
    prefix=settings.API_PREFIX,
    tags=["uploads"],
)
