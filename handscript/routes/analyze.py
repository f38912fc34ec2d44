# handscript/routes/analyze.py
import asyncio
import logging
from typing import Optional

from fastapi import APIRouter, File, UploadFile
from fastapi.responses import JSONResponse

from ..config import settings
from ..exceptions import (
    HandscriptError,
    MissingImageError,
    UploadTooLargeError,
    UpstreamError,
)
from ..prompt_store import get_active_prompt
from ..schemas import ErrorResponse, TranscriptionResult
from ..services.transcription import transcribe
from ..utils.images import FitPolicy, UploadedImage, fit_image
from ..utils.logger import log_error

logger = logging.getLogger(__name__)

router = APIRouter(tags=["analyze"])


async def read_upload(image: Optional[UploadFile]) -> UploadedImage:
    if image is None:
        raise MissingImageError("no 'image' field in form")
    try:
        # one byte past the cap is enough to know it is over
        raw = await image.read(settings.MAX_UPLOAD_BYTES + 1)
    finally:
        await image.close()
    if not raw:
        raise MissingImageError("empty 'image' field")
    if len(raw) > settings.MAX_UPLOAD_BYTES:
        raise UploadTooLargeError(f"upload over {settings.MAX_UPLOAD_BYTES} bytes")
    return UploadedImage(data=raw, media_type=image.content_type or "image/jpeg")


def error_response(e: HandscriptError) -> JSONResponse:
    return JSONResponse(status_code=e.status_code, content={"error": e.public_message})


@router.post(
    "/analyze",
    response_model=TranscriptionResult,
    responses={400: {"model": ErrorResponse}, 413: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def analyze(image: Optional[UploadFile] = File(None)):
    """
    ONE-PASS PIPELINE:
      fit the upload under the byte budget (worker thread),
      one vision-model call with the active prompt,
      count words locally from the parsed transcription.
    """
    stage = "upload"
    try:
        uploaded = await read_upload(image)

        stage = "fit_image"
        fitted = await asyncio.to_thread(fit_image, uploaded, FitPolicy.from_settings(settings))

        stage = "transcribe"
        prompt = await get_active_prompt()
        return await transcribe(fitted, prompt)

    except UpstreamError as e:
        await log_error(stage, str(e), {"cause": repr(e.__cause__)} if e.__cause__ else None)
        return error_response(e)
    except HandscriptError as e:
        logger.info("Rejected upload at %s: %s", stage, e)
        return error_response(e)
    except Exception as e:
        logger.exception("Unexpected failure at %s", stage)
        await log_error(stage, repr(e))
        return error_response(HandscriptError(str(e)))
