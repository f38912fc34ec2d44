import logging
from dataclasses import dataclass
from io import BytesIO
from typing import Iterator

from PIL import Image, ImageOps, UnidentifiedImageError

from ..exceptions import ImageTooLargeError, InvalidImageError

logger = logging.getLogger(__name__)

FITTED_MEDIA_TYPE = "image/jpeg"


@dataclass(frozen=True)
class UploadedImage:
    data: bytes
    media_type: str = "image/jpeg"

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class EncodingAttempt:
    quality: int
    max_width: int


@dataclass(frozen=True)
class FittedImage:
    data: bytes
    attempt: EncodingAttempt
    media_type: str = FITTED_MEDIA_TYPE

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class FitPolicy:
    budget_bytes: int
    start_quality: int = 90
    quality_step: int = 10
    min_quality: int = 60
    start_width: int = 2000
    width_step: int = 200
    min_width: int = 1000

    def __post_init__(self) -> None:
        # Positive steps and floors at or below their starts keep iter_attempts finite
        if self.budget_bytes <= 0:
            raise ValueError(f"budget_bytes must be positive, got {self.budget_bytes}")
        if self.quality_step <= 0 or self.width_step <= 0:
            raise ValueError(
                f"quality_step and width_step must be positive, got {self.quality_step} and {self.width_step}"
            )
        if not 1 <= self.min_quality <= self.start_quality:
            raise ValueError(f"expected 1 <= min_quality ({self.min_quality}) <= start_quality ({self.start_quality})")
        if not 1 <= self.min_width <= self.start_width:
            raise ValueError(f"expected 1 <= min_width ({self.min_width}) <= start_width ({self.start_width})")

    @classmethod
    def from_settings(cls, settings) -> "FitPolicy":
        return cls(
            budget_bytes=settings.IMAGE_BUDGET_BYTES,
            start_quality=settings.IMAGE_START_QUALITY,
            quality_step=settings.IMAGE_QUALITY_STEP,
            min_quality=settings.IMAGE_MIN_QUALITY,
            start_width=settings.IMAGE_START_WIDTH,
            width_step=settings.IMAGE_WIDTH_STEP,
            min_width=settings.IMAGE_MIN_WIDTH,
        )


def _descending(start: int, step: int, floor: int) -> Iterator[int]:
    # start, start - step, ... and always the floor itself last
    value = start
    while value > floor:
        yield value
        value -= step
    yield floor


def iter_attempts(policy: FitPolicy) -> Iterator[EncodingAttempt]:
    """
    Yield encoding attempts in search order: quality drops first, then the
    width bound drops one step and quality restarts from the top.
    The sequence is finite and ends at (min_quality, min_width).
    """
    for width in _descending(policy.start_width, policy.width_step, policy.min_width):
        for quality in _descending(policy.start_quality, policy.quality_step, policy.min_quality):
            yield EncodingAttempt(quality=quality, max_width=width)


def _load(raw_bytes: bytes) -> Image.Image:
    try:
        img = Image.open(BytesIO(raw_bytes))
        # Phone photos often carry the rotation only in EXIF
        img = ImageOps.exif_transpose(img)
        return img.convert("RGB")
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as e:
        raise InvalidImageError(str(e)) from e


def encode_attempt(img: Image.Image, attempt: EncodingAttempt) -> bytes:
    """Fit inside a max_width square (never upscaling) and encode as JPEG."""
    w, h = img.size
    scale = min(1.0, attempt.max_width / max(w, h))
    if scale < 1.0:
        size = (max(1, int(w * scale)), max(1, int(h * scale)))
        img = img.resize(size, Image.Resampling.LANCZOS)
    buf = BytesIO()
    img.save(buf, format="JPEG", quality=attempt.quality, optimize=True)
    return buf.getvalue()


def fit_image(image: UploadedImage, policy: FitPolicy) -> FittedImage:
    img = _load(image.data)
    tried = 0
    for attempt in iter_attempts(policy):
        tried += 1
        data = encode_attempt(img, attempt)
        if len(data) < policy.budget_bytes:
            logger.info(
                "Fitted %s image of %d bytes to %d bytes (quality=%d, max_width=%d, attempts=%d)",
                image.media_type, image.size, len(data), attempt.quality, attempt.max_width, tried,
            )
            return FittedImage(data=data, attempt=attempt)
        logger.debug(
            "Attempt quality=%d max_width=%d produced %d bytes, budget %d",
            attempt.quality, attempt.max_width, len(data), policy.budget_bytes,
        )
    raise ImageTooLargeError(
        f"image of {image.size} bytes still over {policy.budget_bytes} bytes after {tried} attempts"
    )
