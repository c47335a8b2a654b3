from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import logging
import os

from config import DATABASE_URL, ENVIRONMENT, LOG_LEVEL, SITE_URL
from database.connection import Database
from routes import admin, forms, registrations, verify
from services.errors import StoreError, TicketingError, ValidationError

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Tests install their own store before startup
    database = getattr(app.state, "database", None)
    owns_database = database is None
    if owns_database:
        database = Database(DATABASE_URL).open()
        app.state.database = database
    yield
    if owns_database:
        database.close()
        del app.state.database


# Initialize FastAPI app
app = FastAPI(
    title="Ticketing API",
    description="API for event registration and QR code ticketing",
    version="1.0.0",
    lifespan=lifespan,
)

# CORS configuration - Restrict to specific origins for security
allowed_origins = [
    SITE_URL,
    "http://localhost:3000",
    "http://localhost:5173",
]

# In development, allow localhost with any port
allowed_origin_regex = None
if ENVIRONMENT == "development":
    allowed_origin_regex = r"http://localhost(:\d+)?"

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_origin_regex=allowed_origin_regex,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE"],
    allow_headers=["Content-Type", "Authorization"],
)


@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message, "errors": exc.errors})


@app.exception_handler(StoreError)
async def store_error_handler(request: Request, exc: StoreError):
    # Cause already logged by the store
    return JSONResponse(status_code=exc.status_code, content={"detail": "Internal storage error"})


@app.exception_handler(TicketingError)
async def ticketing_error_handler(request: Request, exc: TicketingError):
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


app.include_router(registrations.router, tags=["Registrations"])
app.include_router(verify.router, tags=["Verify"])
app.include_router(admin.router, tags=["Admin"])
app.include_router(forms.router, tags=["Forms"])


@app.get("/")
def root():
    """Root endpoint"""
    return {"message": "Ticketing API", "version": "1.0.0"}


@app.get("/health")
def health_check():
    """Health check endpoint"""
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn
    host = os.getenv("API_HOST", "0.0.0.0")
    port = int(os.getenv("API_PORT", 5000))
    uvicorn.run("main:app", host=host, port=port, reload=ENVIRONMENT == "development")
