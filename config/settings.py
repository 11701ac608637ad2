import logging
import os
from pathlib import Path
from dotenv import load_dotenv

# Load .env from the project root
BASE_DIR = Path(__file__).resolve().parents[1]
load_dotenv(BASE_DIR / ".env")


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    return float(value) if value else default


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    return int(value) if value else default


class Settings:
    GENERATION_WEBHOOK_URL: str = os.getenv(
        "GENERATION_WEBHOOK_URL",
        "https://hanumet.app.n8n.cloud/webhook/content-creator",
    )
    REQUEST_STYLE: str = os.getenv("REQUEST_STYLE", "realistic")

    REQUEST_TIMEOUT: float = _env_float("REQUEST_TIMEOUT", 120.0)  # seconds
    NORMALIZE_TIMEOUT: float = _env_float("NORMALIZE_TIMEOUT", 30.0)  # seconds

    MAX_IMAGE_DIMENSION: int = _env_int("MAX_IMAGE_DIMENSION", 1200)  # px
    TARGET_IMAGE_BYTES: int = _env_int("TARGET_IMAGE_BYTES", 300 * 1024)
    # JPEG quality in percent: 0.85 -> 0.15 in steps of 0.10
    JPEG_QUALITY_START: int = _env_int("JPEG_QUALITY_START", 85)
    JPEG_QUALITY_STEP: int = _env_int("JPEG_QUALITY_STEP", 10)
    JPEG_QUALITY_FLOOR: int = _env_int("JPEG_QUALITY_FLOOR", 15)
    THUMBNAIL_SIZE: int = _env_int("THUMBNAIL_SIZE", 256)  # px

    GALLERY_PATH: Path = Path(
        os.getenv("GALLERY_PATH", str(Path.home() / ".restaurant_creator" / "gallery.json"))
    ).expanduser()

    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")


settings = Settings()


def configure_logging(level: str | None = None) -> None:
    logging.basicConfig(
        level=(level or settings.LOG_LEVEL).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
