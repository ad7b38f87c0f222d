"""Fetch helpers for the raw directory sources (HTML page and PDF list)."""

import logging
from pathlib import Path
from typing import Optional, Union

import pdfplumber
import requests
from bs4 import BeautifulSoup

from quiltshops.core.config import DEFAULT_USER_AGENT

logger = logging.getLogger(__name__)
_SESSION = requests.Session()
_SESSION.headers["User-Agent"] = DEFAULT_USER_AGENT

REQUEST_TIMEOUT = 30
CHUNK_SIZE = 64 * 1024


class SourceFetchError(RuntimeError):
    """Raised when a directory source cannot be downloaded."""


class SourceParseError(RuntimeError):
    """Raised when a downloaded source cannot be read."""


def _get(url: str, session: Optional[requests.Session], **kwargs) -> requests.Response:
    http = session or _SESSION
    try:
        response = http.get(url, timeout=REQUEST_TIMEOUT, **kwargs)
    except requests.RequestException as exc:
        raise SourceFetchError(f"failed to fetch {url}: {exc}") from exc
    if response.status_code != 200:
        response.close()
        raise SourceFetchError(f"status code error: {response.status_code} {response.reason}")
    return response


def fetch_html(url: str, session: Optional[requests.Session] = None) -> BeautifulSoup:
    response = _get(url, session)
    logger.info("Fetched %s (%d bytes)", url, len(response.content))
    return BeautifulSoup(response.text, "html.parser")


def download_pdf(
    url: str,
    dest: Union[str, Path],
    *,
    session: Optional[requests.Session] = None,
    force: bool = False,
) -> Path:
    """Download ``url`` to ``dest`` unless a copy is already on disk."""
    path = Path(dest)
    if path.exists() and not force:
        logger.info("Using cached PDF at %s", path)
        return path

    response = _get(url, session, stream=True)
    partial = path.with_suffix(path.suffix + ".part")
    try:
        with partial.open("wb") as fh:
            for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                if chunk:
                    fh.write(chunk)
    except requests.RequestException as exc:
        partial.unlink(missing_ok=True)
        raise SourceFetchError(f"failed to download {url}: {exc}") from exc
    finally:
        response.close()

    partial.replace(path)
    logger.info("Downloaded %s to %s", url, path)
    return path


def extract_pdf_text(path: Union[str, Path]) -> str:
    """Flatten every page of a PDF to text, one page after another."""
    try:
        with pdfplumber.open(path) as pdf:
            pages = [page.extract_text() or "" for page in pdf.pages]
    except Exception as exc:  # noqa: BLE001
        raise SourceParseError(f"failed to read PDF {path}: {exc}") from exc

    logger.info("Extracted text from %d PDF pages", len(pages))
    return "\n".join(pages)
