from __future__ import annotations

from typing import List, Optional
from urllib.parse import quote, urljoin, urlparse, urlunparse

from bs4 import BeautifulSoup


def normalize_url(url: str) -> str:
    """
    Normalize URL by removing the fragment.
    """
    parts = list(urlparse(url))
    parts[5] = ""  # strip fragment
    return urlunparse(parts)


def code_url(site_root: str, code: str) -> str:
    """
    Build the canonical page URL for a code: the site root plus the code as
    the single path segment.
    """
    root = site_root if site_root.endswith("/") else site_root + "/"
    return root + quote(code, safe="")


def url_contains(fragment: str):
    """Return a predicate matching URLs that contain ``fragment``."""
    def _matches(url: str) -> bool:
        return fragment in url
    return _matches


def has_selector(html: str, selector: str) -> bool:
    """
    Return True if the CSS selector matches anything in the static markup.
    """
    soup = BeautifulSoup(html, "html.parser")
    return soup.select_one(selector) is not None


def extract_frame_urls(html: str, base_url: str) -> List[str]:
    """
    Extract absolute ``src`` URLs of every iframe in document order.
    """
    soup = BeautifulSoup(html, "html.parser")
    out: List[str] = []
    for frame in soup.select("iframe[src]"):
        src = frame.get("src")
        if not src:
            continue
        out.append(normalize_url(urljoin(base_url, src)))
    return out


def first_matching(urls: List[str], predicate) -> Optional[str]:
    for url in urls:
        if predicate(url):
            return url
    return None
