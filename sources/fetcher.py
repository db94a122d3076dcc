"""
Source fetcher — downloads one award file, falling back to a second host.

The government endpoints sometimes answer 200 with an HTML error page
instead of the XML, so a body that looks like HTML counts as a failure
just like a network error or a 4xx/5xx status.
"""

import logging
import re
from typing import List, Optional, Sequence

import requests
from bs4 import BeautifulSoup
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

import config

logger = logging.getLogger(__name__)

_HTML_SNIFF = re.compile(rb"^\s*(<!doctype\s+html|<html)", re.IGNORECASE)


class FetchError(Exception):
    """Raised when no host could deliver the file."""

    def __init__(self, file_id: str, status_code: Optional[int] = None):
        self.file_id = file_id
        self.status_code = status_code
        status = status_code if status_code is not None else "N/A"
        super().__init__(f"{file_id} unavailable on all hosts (last status: {status})")


def _make_session() -> requests.Session:
    """Build a requests.Session with browser-like headers and no automatic retries."""
    session = requests.Session()

    # Host fallback is the only retry policy.
    adapter = HTTPAdapter(max_retries=Retry(total=0, raise_on_status=False))
    session.mount("https://", adapter)
    session.mount("http://", adapter)

    session.headers.update(
        {
            "User-Agent": (
                "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
                "AppleWebKit/537.36 (KHTML, like Gecko) "
                "Chrome/121.0.0.0 Safari/537.36"
            ),
            "Accept-Language": "zh-TW,zh;q=0.9,en;q=0.8",
            "Accept": "application/xml,text/xml;q=0.9,*/*;q=0.8",
        }
    )
    return session


def looks_like_html(payload: bytes) -> bool:
    """True if the body starts like an HTML page rather than an XML document."""
    if not payload:
        return False
    if payload.startswith(b"\xef\xbb\xbf"):
        payload = payload[3:]
    return bool(_HTML_SNIFF.match(payload[:512]))


def _html_title(payload: bytes) -> str:
    soup = BeautifulSoup(payload, "html.parser")
    if soup.title and soup.title.string:
        return soup.title.string.strip()
    return ""


class SourceFetcher:
    """Fetch award files from the configured hosts, in order."""

    def __init__(
        self,
        hosts: Optional[Sequence[str]] = None,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.hosts: List[str] = list(hosts if hosts is not None else config.SOURCE_HOSTS)
        self.timeout = timeout if timeout is not None else config.FETCH_TIMEOUT
        self.session = session or _make_session()

    def fetch(self, file_id: str) -> bytes:
        """
        Return the raw document bytes for file_id.

        Raises FetchError carrying the last HTTP status seen (if any)
        once every host has failed.
        """
        last_status: Optional[int] = None

        for url_template in self.hosts:
            url = url_template.format(file_id=file_id)
            try:
                resp = self.session.get(url, timeout=self.timeout)
            except requests.RequestException as exc:
                logger.warning("GET failed for %s: %s", url, exc)
                continue

            last_status = resp.status_code
            if resp.status_code >= 400:
                logger.warning("GET %s returned HTTP %d", url, resp.status_code)
                continue

            body = resp.content
            if looks_like_html(body):
                logger.warning(
                    "GET %s returned an HTML page instead of data (%s)",
                    url, _html_title(body) or "no title",
                )
                continue

            logger.info("Fetched %s (%d bytes)", url, len(body))
            return body

        raise FetchError(file_id, last_status)
