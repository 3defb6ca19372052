from fastapi import FastAPI, APIRouter, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from dotenv import load_dotenv
from starlette.middleware.cors import CORSMiddleware
import os
import logging
from pathlib import Path

ROOT_DIR = Path(__file__).parent
load_dotenv(ROOT_DIR / '.env')

from bootstrap import run_bootstrap
from routers.attendees import router as attendees_router
from routers.auth_routes import router as auth_router
from routers.events import router as events_router
from routers.feedback import router as feedback_router
from routers.mentors import router as mentors_router
from routers.reports import router as reports_router
from routers.tasks import router as tasks_router

app = FastAPI(title="Workshop Console API", version="1.0.0")
api_router = APIRouter(prefix="/api")

# Configure logging
logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)


# ==================== STARTUP ====================
@app.on_event("startup")
async def startup_event():
    run_bootstrap()
    logger.info("Workshop console API started")


# ==================== ERROR HANDLERS ====================
@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = [
        {
            "loc": [str(part) for part in err.get("loc", ())],
            "msg": err.get("msg", ""),
            "type": err.get("type", ""),
        }
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"message": "Invalid request data", "errors": errors}
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"message": "Server error"}
    )


# ==================== PUBLIC ROUTES ====================
@api_router.get("/")
async def root():
    return {"message": "Workshop Console API is running"}


@api_router.get("/health")
async def health_check():
    return {"status": "healthy"}


# Include routers and add middleware
app.include_router(api_router)
app.include_router(auth_router, prefix="/api")
app.include_router(events_router, prefix="/api")
app.include_router(attendees_router, prefix="/api")
app.include_router(mentors_router, prefix="/api")
app.include_router(feedback_router, prefix="/api")
app.include_router(tasks_router, prefix="/api")
app.include_router(reports_router, prefix="/api")

app.add_middleware(
    CORSMiddleware,
    allow_credentials=True,
    allow_origins=os.environ.get('CORS_ORIGINS', '*').split(','),
    allow_methods=["*"],
    allow_headers=["*"],
)
