"""Relaxed JSON loading.

Data documents may carry ``// line`` and ``/* block */`` comments outside of
quoted strings. They are removed with a single linear pass before the bytes
are handed to the strict ``json`` parser, which stays the final judge of
validity.

This module provides functions for loading such documents from files and
URLs with proper error handling.
"""

import json
from pathlib import Path
from typing import Any
from urllib.parse import urlparse

import requests

from .exceptions import DataError
from .logging_config import get_logger

logger = get_logger(__name__)

_SLASH = ord("/")
_STAR = ord("*")
_BACKSLASH = ord("\\")
_NEWLINE = ord("\n")
_QUOTES = (ord('"'), ord("'"))

# comment kinds
_PENDING = 0
_LINE = 1
_BLOCK = 2


def strip_comments(raw: bytes) -> bytes:
    """Remove line and block comments that sit outside quoted strings.

    Single and double quotes toggle the same flag, so an unescaped
    apostrophe inside a double-quoted string flips the scanner into
    "outside" mode. Documents that mix the two quote kinds are not
    supported.

    If the scan ends inside a string, an escape or a block comment the
    original bytes are returned untouched; partial output is never returned.

    Args:
        raw: Document bytes as read from disk.

    Returns:
        Bytes without comments, or ``raw`` itself on an ambiguous end state.
    """
    quoted = False
    escaped = False
    comment = None
    out = bytearray()

    i = 0
    n = len(raw)
    while i < n:
        b = raw[i]

        if comment is not None:
            if comment == _PENDING:
                if b == _SLASH:
                    comment = _LINE
                elif b == _STAR:
                    comment = _BLOCK
                i += 1
                continue

            if comment == _LINE:
                j = raw.find(b"\n", i)
                # newline itself is kept
                i = n if j == -1 else j
                comment = None
                continue

            j = raw.find(b"*/", i)
            if j == -1:
                i = n
            else:
                i = j + 2
                comment = None
            continue

        if escaped:
            escaped = False
            out.append(b)
            i += 1
            continue

        if b == _BACKSLASH and quoted:
            escaped = True
            out.append(b)
            i += 1
            continue

        if b in _QUOTES:
            quoted = not quoted

        if b == _SLASH and not quoted:
            comment = _PENDING
            i += 1
            continue

        out.append(b)
        i += 1

    if quoted or escaped or comment is not None:
        logger.debug(
            "Ambiguous end state (quoted=%s, escaped=%s, comment=%s); "
            "returning input unchanged",
            quoted,
            escaped,
            comment,
        )
        return raw

    return bytes(out)


def parse_document(raw: bytes, source: str = "<data>") -> Any:
    """Strip comments from ``raw`` and parse the result as JSON.

    Raises:
        DataError: If the sanitized bytes are not valid JSON.
    """
    try:
        return json.loads(strip_comments(raw))
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        logger.debug("Invalid JSON data in %s: %s", source, e)
        raise DataError(f"invalid JSON data in {source}: {e}") from e


def read_data_file(file_path: str | Path) -> bytes:
    """Read the raw bytes of a local data document.

    Raises:
        DataError: If the file cannot be read.
    """
    file_path = Path(file_path)
    logger.debug("Reading data file: %s", file_path)
    try:
        return file_path.read_bytes()
    except OSError as e:
        raise DataError(f"error reading data file {file_path}: {e}") from e


def read_data_url(url: str, timeout: int = 30) -> bytes:
    """Fetch the raw bytes of a data document over HTTP(S).

    Args:
        url: URL to fetch the document from.
        timeout: Request timeout in seconds.

    Raises:
        DataError: If the URL is invalid or the request fails.
    """
    logger.debug("Fetching data from URL: %s", url)

    parsed_url = urlparse(url)
    if not all([parsed_url.scheme, parsed_url.netloc]):
        raise DataError(f"invalid URL: {url}")

    try:
        response = requests.get(url, timeout=timeout)
        response.raise_for_status()
    except requests.exceptions.Timeout as e:
        raise DataError(f"request timeout for URL: {url}") from e
    except requests.exceptions.ConnectionError as e:
        raise DataError(f"connection error for URL: {url}") from e
    except requests.exceptions.HTTPError as e:
        raise DataError(
            f"HTTP error {e.response.status_code} for URL: {url}"
        ) from e
    except requests.exceptions.RequestException as e:
        raise DataError(f"request error for URL {url}: {e}") from e

    return response.content


def is_url(source: str) -> bool:
    """Return True if ``source`` looks like an HTTP(S) URL."""
    return urlparse(str(source)).scheme in ("http", "https")


def load_data(source: str | Path, timeout: int = 30) -> Any:
    """Load a relaxed JSON document from a file path or a URL.

    Args:
        source: Local path, or an ``http://``/``https://`` URL.
        timeout: Request timeout in seconds (only used for URLs).

    Returns:
        The parsed document.

    Raises:
        DataError: If the document cannot be read or is not valid JSON
            after comment removal.
    """
    if is_url(str(source)):
        raw = read_data_url(str(source), timeout)
    else:
        raw = read_data_file(source)

    data = parse_document(raw, str(source))
    logger.info("Loaded data from %s", source)
    return data
