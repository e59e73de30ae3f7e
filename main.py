import logging
import os
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlmodel import SQLModel

import models  # noqa: F401  Ensure every table is known by SQLModel for table creation
from api.admin_violation_routes import router as admin_violation_router
from api.checkin_routes import history_router as check_in_history_router
from api.checkin_routes import router as shift_check_in_router
from api.site_routes import router as site_router
from core.errors import CheckInError
from core.settings import CheckInPolicy
from db.session import engine
from services.shift_locks import ShiftLockRegistry

# Load environment variables from .env file, if it exists
load_dotenv()

# Configure logging
logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
logger = logging.getLogger(__name__)

# This file is the control center of the whole application

DEV_DOMAIN = os.getenv("DEV_DOMAIN", "http://localhost:5173")
PRODUCTION_DOMAIN = os.getenv("PRODUCTION_DOMAIN")

allowed_origins_list = [
    DEV_DOMAIN,
    PRODUCTION_DOMAIN,
    "http://localhost:3000",  # Additional fallback for React dev
    "http://127.0.0.1:5173",  # Additional fallback for Vite dev
]

# Remove any None values and duplicates
allowed_origins_list = list(set([origin for origin in allowed_origins_list if origin]))

logger.info(f"🌐 CORS: Allowing origins: {allowed_origins_list}")


# When We Start, Create the DB Tables if they don't exist and build the
# per-app check-in state (shift locks, thresholds)
@asynccontextmanager
async def lifespan(app: FastAPI):
    SQLModel.metadata.create_all(engine)

    app.state.shift_locks = ShiftLockRegistry()
    app.state.check_in_policy = CheckInPolicy.from_env()

    yield


app = FastAPI(lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Every core failure reaches the client as {"detail", "error", ...context}
@app.exception_handler(CheckInError)
async def check_in_error_handler(request: Request, exc: CheckInError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


app.include_router(shift_check_in_router, prefix="/shifts", tags=["Check-In"])
app.include_router(check_in_history_router, prefix="/check-ins", tags=["Check-In"])
app.include_router(site_router, prefix="/sites", tags=["Sites", "Geofence"])
app.include_router(admin_violation_router, prefix="/admin", tags=["Admin", "Geofence Review"])
