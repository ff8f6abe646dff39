from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
import uvicorn
import logging
import warnings

from image_gallery.storage.s3 import S3ObjectStore
from image_gallery.settings import settings
from image_gallery.routers.image_service import router as image_router, media_router
from image_gallery.exceptions import DimensionDriftWarning, add_exception_handlers

logging.basicConfig(level=logging.INFO)
# Route drift diagnostics into the log, every occurrence
logging.captureWarnings(True)
warnings.simplefilter("always", DimensionDriftWarning)
log = logging.getLogger("image-gallery")

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
        Async context manager for FastAPI application lifecycle events.
        Initializes and closes the object store for the application.
    """
    # Initialize resources
    app.state.store = S3ObjectStore(settings)
    yield
    # Cleanup resources
    app.state.store.close()

# Initialize App
app = FastAPI(
    title=settings.app_title,
    lifespan=lifespan,
    description="Stores, serves and lists generated images",
)

# Add exception handlers
add_exception_handlers(app)

# CORS - Middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=['*'],
    allow_methods=["*"],
    allow_headers=["*"],
)

# Add the routers
app.include_router(image_router)
app.include_router(media_router)

# Check Health
@app.get("/")
def read_root():
    """
        Default end point

    """
    return "Image Gallery Service is running."

if __name__ == "__main__":
    uvicorn.run("image_gallery.main:app", host="0.0.0.0", port=8000, reload=True)
