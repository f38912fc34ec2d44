import os
from typing import Optional

from dotenv import load_dotenv

load_dotenv()

MIB = 1024 * 1024

PROMPT_VARIANTS = ("verbatim_count", "rare_blanks", "confidence_blanks")


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw.strip())
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None


def _env_bool(name: str) -> Optional[bool]:
    raw = (os.getenv(name) or "").strip().lower()
    if not raw:
        return None
    if raw in ("1", "true", "yes", "on"):
        return True
    if raw in ("0", "false", "no", "off"):
        return False
    raise ValueError(f"{name} must be a boolean, got {raw!r}")


class Settings:
    def __init__(self) -> None:
        self.OPENAI_API_KEY: str = os.getenv("OPENAI_API_KEY", "")
        self.OPENAI_BASE_URL: Optional[str] = os.getenv("OPENAI_BASE_URL") or None
        self.OPENAI_MODEL_TRANSCRIBE: str = os.getenv("OPENAI_MODEL_TRANSCRIBE", "gpt-4o")
        self.MAX_OUTPUT_TOKENS_TRANSCRIBE: int = _env_int("MAX_OUTPUT_TOKENS_TRANSCRIBE", 4000)
        self.OPENAI_TIMEOUT_SECONDS: int = _env_int("OPENAI_TIMEOUT_SECONDS", 60)

        # Exactly one prompt policy per deployment
        self.PROMPT_VARIANT: str = os.getenv("PROMPT_VARIANT", "confidence_blanks").strip().lower()
        self.PRESERVE_LINE_BREAKS: Optional[bool] = _env_bool("PRESERVE_LINE_BREAKS")
        self.PROMPT_FILE: Optional[str] = os.getenv("PROMPT_FILE") or None

        # Ingress cap, checked before any decoding
        self.MAX_UPLOAD_BYTES: int = _env_int("MAX_UPLOAD_BYTES", 50 * MIB)

        # Size fitting: budget sits below the provider's 5 MiB hard cap
        self.IMAGE_BUDGET_BYTES: int = _env_int("IMAGE_BUDGET_BYTES", int(4.5 * MIB))
        self.IMAGE_START_QUALITY: int = _env_int("IMAGE_START_QUALITY", 90)
        self.IMAGE_QUALITY_STEP: int = _env_int("IMAGE_QUALITY_STEP", 10)
        self.IMAGE_MIN_QUALITY: int = _env_int("IMAGE_MIN_QUALITY", 60)
        self.IMAGE_START_WIDTH: int = _env_int("IMAGE_START_WIDTH", 2000)
        self.IMAGE_WIDTH_STEP: int = _env_int("IMAGE_WIDTH_STEP", 200)
        self.IMAGE_MIN_WIDTH: int = _env_int("IMAGE_MIN_WIDTH", 1000)

        self.PUBLIC_DIR: str = os.getenv("PUBLIC_DIR", "public")
        self.LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

        # Optional error-log sink
        self.MONGO_URL: Optional[str] = os.getenv("MONGO_URL") or None
        self.MONGO_DB: str = os.getenv("MONGO_DB", "handscript")

        self.HOST: str = os.getenv("HOST", "0.0.0.0")
        self.PORT: int = _env_int("PORT", 3000)

        self._validate()

    def _validate(self) -> None:
        if self.PROMPT_VARIANT not in PROMPT_VARIANTS:
            raise ValueError(
                f"PROMPT_VARIANT must be one of {', '.join(PROMPT_VARIANTS)}, got {self.PROMPT_VARIANT!r}"
            )
        if self.IMAGE_BUDGET_BYTES <= 0 or self.MAX_UPLOAD_BYTES <= 0:
            raise ValueError("IMAGE_BUDGET_BYTES and MAX_UPLOAD_BYTES must be positive")
        if self.IMAGE_QUALITY_STEP <= 0 or self.IMAGE_WIDTH_STEP <= 0:
            raise ValueError("IMAGE_QUALITY_STEP and IMAGE_WIDTH_STEP must be positive")
        if not 1 <= self.IMAGE_MIN_QUALITY <= self.IMAGE_START_QUALITY <= 95:
            raise ValueError("expected 1 <= IMAGE_MIN_QUALITY <= IMAGE_START_QUALITY <= 95")
        if not 1 <= self.IMAGE_MIN_WIDTH <= self.IMAGE_START_WIDTH:
            raise ValueError("expected 1 <= IMAGE_MIN_WIDTH <= IMAGE_START_WIDTH")


settings = Settings()
