import logging
import os

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exception_handlers import request_validation_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.staticfiles import StaticFiles

from .config import settings
from .exceptions import MissingImageError
from .routes import analyze, prompts
from .schemas import HealthResponse
from .security import add_cors
from .utils.logger import configure_logging

# Also applies under `uvicorn handscript.main:app`, not only run()
configure_logging(settings.LOG_LEVEL)

logger = logging.getLogger(__name__)

app = FastAPI(title="Handwriting Word Count API", version="0.4.0")

# CORS
add_cors(app)

app.include_router(analyze.router)
app.include_router(prompts.router)


@app.exception_handler(RequestValidationError)
async def validation_error(request: Request, exc: RequestValidationError):
    # A non-file `image` form field fails validation before the route runs
    if request.url.path == "/analyze":
        logger.info("Rejected upload at validation: %s", exc.errors())
        return analyze.error_response(MissingImageError("image field is not a file"))
    return await request_validation_exception_handler(request, exc)


@app.get("/health", response_model=HealthResponse)
def health():
    return HealthResponse(model=settings.OPENAI_MODEL_TRANSCRIBE, promptVariant=settings.PROMPT_VARIANT)


def mount_public(target: FastAPI, directory: str) -> bool:
    """Serve `directory` at / with index.html; register after the API routes so they win."""
    if not os.path.isdir(directory):
        logger.warning("PUBLIC_DIR %s not found; static assets disabled", directory)
        return False
    target.mount("/", StaticFiles(directory=directory, html=True), name="public")
    return True


mount_public(app, settings.PUBLIC_DIR)


def run() -> None:
    logger.info("Server running on port %d", settings.PORT)
    uvicorn.run(app, host=settings.HOST, port=settings.PORT, log_config=None)


if __name__ == "__main__":
    run()
