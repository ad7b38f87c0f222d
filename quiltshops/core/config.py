"""Application configuration helpers."""

import logging
import os
from dataclasses import dataclass
from functools import lru_cache

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

DEFAULT_CA_SOURCE_URL = "https://ronatheribbiter.com/quilt-shops-california/"
DEFAULT_VA_PDF_URL = "https://vcq.org/wp-content/uploads/2025/03/2025_3-V1.0-Quilt-Shop-List.pdf"
DEFAULT_GEOCODER_URL = "https://nominatim.openstreetmap.org/search"
DEFAULT_USER_AGENT = "quilt-shop-directory/1.0 (+https://github.com/chicks-net/quilt-shop-proximity)"

CITY_STRATEGIES = {"heuristic", "known", "known_then_heuristic"}


@dataclass(frozen=True)
class Settings:
    database_url: str
    server_port: int = 9000
    ca_source_url: str = DEFAULT_CA_SOURCE_URL
    va_pdf_url: str = DEFAULT_VA_PDF_URL
    va_pdf_path: str = "virginia-quilt-shops.pdf"
    geocoder_url: str = DEFAULT_GEOCODER_URL
    geocoder_user_agent: str = DEFAULT_USER_AGENT
    geocode_timeout: int = 10
    geocode_min_interval: float = 1.0
    va_city_strategy: str = "heuristic"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Load settings from environment variables with sensible defaults."""
    load_dotenv()

    database_url = os.getenv("DATABASE_URL", "")
    server_port = int(os.getenv("SERVER_PORT", "9000"))
    ca_source_url = os.getenv("CA_SOURCE_URL") or DEFAULT_CA_SOURCE_URL
    va_pdf_url = os.getenv("VA_PDF_URL") or DEFAULT_VA_PDF_URL
    va_pdf_path = os.getenv("VA_PDF_PATH") or "virginia-quilt-shops.pdf"
    geocoder_url = os.getenv("GEOCODER_URL") or DEFAULT_GEOCODER_URL
    geocoder_user_agent = os.getenv("GEOCODER_USER_AGENT") or DEFAULT_USER_AGENT
    geocode_timeout = int(os.getenv("GEOCODE_TIMEOUT", "10"))
    geocode_min_interval = float(os.getenv("GEOCODE_MIN_INTERVAL", "1.0"))
    va_city_strategy = os.getenv("VA_CITY_STRATEGY", "heuristic").strip().lower()

    if not database_url:
        logger.warning("DATABASE_URL is not set; database operations will fail.")
    if va_city_strategy not in CITY_STRATEGIES:
        logger.warning("Unknown VA_CITY_STRATEGY=%s; falling back to heuristic.", va_city_strategy)
        va_city_strategy = "heuristic"

    return Settings(
        database_url=database_url,
        server_port=server_port,
        ca_source_url=ca_source_url,
        va_pdf_url=va_pdf_url,
        va_pdf_path=va_pdf_path,
        geocoder_url=geocoder_url,
        geocoder_user_agent=geocoder_user_agent,
        geocode_timeout=geocode_timeout,
        geocode_min_interval=geocode_min_interval,
        va_city_strategy=va_city_strategy,
    )
