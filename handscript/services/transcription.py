import logging
import re
from dataclasses import dataclass
from typing import Optional

from ..schemas import TranscriptionResult
from ..utils.images import FittedImage
from .openai_client import request_transcription

logger = logging.getLogger(__name__)

TRANSCRIPTION_RE = re.compile(r"TRANSCRIPTION:\s*(.*)", re.IGNORECASE | re.DOTALL)
WORD_COUNT_RE = re.compile(r"WORD COUNT:\s*(\d+)", re.IGNORECASE)


@dataclass(frozen=True)
class ParsedReply:
    transcription: str
    reported_word_count: Optional[int] = None


def count_words(text: str) -> int:
    return len(text.split())


def parse_reply(text: str) -> ParsedReply:
    """
    Pull the transcription out of the model reply.
    Without a TRANSCRIPTION: marker the whole reply is the transcription.
    A WORD COUNT: figure is kept for logging only; it is never the result.
    """
    reported = None
    wc = WORD_COUNT_RE.search(text)
    if wc:
        reported = int(wc.group(1))

    m = TRANSCRIPTION_RE.search(text)
    if not m:
        return ParsedReply(transcription=text, reported_word_count=reported)
    return ParsedReply(transcription=m.group(1).strip(), reported_word_count=reported)


async def transcribe(image: FittedImage, prompt: str) -> TranscriptionResult:
    reply = await request_transcription(image, prompt)
    parsed = parse_reply(reply)
    words = count_words(parsed.transcription)
    if parsed.reported_word_count is not None and parsed.reported_word_count != words:
        logger.debug("Model reported %d words, counted %d", parsed.reported_word_count, words)
    return TranscriptionResult(wordCount=words, transcription=parsed.transcription)
