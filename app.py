import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from logging_config import get_logger, setup_logging
from routers.rooms import rooms_router

# Setup logging
log_level = os.getenv("LOG_LEVEL", "INFO")
log_file = os.getenv("LOG_FILE", None)
setup_logging(log_level=log_level, log_file=log_file)
logger = get_logger(__name__)

app = FastAPI(title="Shelter Lobby API")

# Configure CORS to allow all origins
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Allow all origins
    allow_credentials=True,
    allow_methods=["*"],  # Allow all HTTP methods
    allow_headers=["*"],  # Allow all headers
)

app.include_router(rooms_router)

logger.info("FastAPI application initialized")


@app.get("/")
def root():
    return {"message": "Shelter Lobby API", "status": "ok"}


@app.get("/health")
def health():
    return {"status": "healthy"}
