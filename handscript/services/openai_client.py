import base64
import logging

import httpx
import openai
from openai import AsyncOpenAI

from ..config import settings
from ..exceptions import UpstreamError
from ..utils.images import FittedImage

logger = logging.getLogger(__name__)

_client: AsyncOpenAI | None = None


def get_client() -> AsyncOpenAI:
    global _client
    if _client is None:
        if not settings.OPENAI_API_KEY:
            raise UpstreamError("OPENAI_API_KEY is not set")
        # max_retries=0: one request per upload, no backoff
        _client = AsyncOpenAI(
            api_key=settings.OPENAI_API_KEY,
            base_url=settings.OPENAI_BASE_URL,
            timeout=settings.OPENAI_TIMEOUT_SECONDS,
            max_retries=0,
        )
    return _client


def log_usage(label: str, resp) -> None:
    u = getattr(resp, "usage", None)
    if not u:
        return
    logger.info(
        "[%s] prompt=%s, output=%s",
        label, getattr(u, "prompt_tokens", 0), getattr(u, "completion_tokens", 0),
    )


async def request_transcription(image: FittedImage, prompt: str) -> str:
    """Send one image + instruction turn to the vision model and return its reply text."""
    client = get_client()
    b64 = base64.b64encode(image.data).decode("utf-8")
    try:
        resp = await client.chat.completions.create(
            model=settings.OPENAI_MODEL_TRANSCRIBE,
            max_tokens=settings.MAX_OUTPUT_TOKENS_TRANSCRIBE,
            messages=[
                {
                    "role": "user",
                    "content": [
                        {"type": "image_url", "image_url": {"url": f"data:{image.media_type};base64,{b64}"}},
                        {"type": "text", "text": prompt},
                    ],
                }
            ],
        )
    except (openai.APIConnectionError, httpx.ConnectError, httpx.TimeoutException) as e:
        raise UpstreamError(f"Vision model network error: {e}") from e
    except openai.APIError as e:
        raise UpstreamError(f"Vision model API error: {e}") from e

    log_usage("transcribe", resp)
    if not resp.choices:
        raise UpstreamError("Vision model returned no choices")
    content = resp.choices[0].message.content
    if not content:
        raise UpstreamError("Vision model returned empty content")
    return content
