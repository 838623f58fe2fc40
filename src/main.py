import logging
import os

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.exception_handlers import http_exception_handler
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

# Load environment variables from .env file before anything reads them
load_dotenv()

from exercises_api import router as exercises_router  # noqa: E402
from history_api import router as history_router  # noqa: E402
from profile_api import router as profile_router  # noqa: E402
from progress_api import router as progress_router  # noqa: E402
from session_api import router as session_router  # noqa: E402
from workouts_api import router as workouts_router  # noqa: E402

logging.basicConfig(
    level=os.environ.get("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("gym_tracker")

app = FastAPI(title="Gym Tracker Server", version="1.0.0")

# Comma separated list of front-end origins allowed to call the API
CORS_ALLOWED_ORIGINS = [
    origin.strip()
    for origin in os.environ.get("CORS_ALLOWED_ORIGINS", "http://localhost:5173").split(",")
    if origin.strip()
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(StarletteHTTPException)
async def log_internal_errors(request: Request, exc: StarletteHTTPException):
    if exc.status_code >= 500:
        logger.error(
            "Unhandled exception during request: %s %s. Error: %s",
            request.method,
            request.url,
            exc.detail,
        )
    return await http_exception_handler(request, exc)


# Include routers
app.include_router(session_router)
app.include_router(exercises_router)
app.include_router(workouts_router)
app.include_router(history_router)
app.include_router(progress_router)
app.include_router(profile_router)


@app.get("/")
async def root():
    return {"message": "Welcome to Gym Tracker"}


@app.get("/health")
async def health_check():
    return {"status": "healthy"}
