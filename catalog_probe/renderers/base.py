from __future__ import annotations

from typing import Any, Callable, Optional, Protocol

UrlPredicate = Callable[[str], bool]


class RenderFrame(Protocol):
    """An embedded document inside a rendered page."""

    url: str

    async def content(self) -> str:
        """Return the frame markup; raise ExtractionError if unreadable."""
        ...


class RenderSession(Protocol):
    """
    One page, owned by exactly one probe for one code.
    Backends raise the errors.py taxonomy, never their library exceptions.
    """

    async def navigate(self, url: str) -> None:
        """Load ``url``; raise NavigationError on failure."""
        ...

    async def wait_for_selector(self, selector: str, timeout_ms: int) -> None:
        """Block until ``selector`` matches; raise FrameTimeoutError after ``timeout_ms``."""
        ...

    def frame_matching(self, predicate: UrlPredicate) -> Optional[RenderFrame]:
        """Return the first frame whose URL satisfies ``predicate``."""
        ...

    async def pause(self, ms: int) -> None:
        ...

    async def close(self) -> None:
        ...


class Renderer(Protocol):
    """
    A page-rendering backend. One instance belongs to one worker; every code
    gets its own session from ``new_session``.
    """

    name: str

    async def start(self) -> None:
        """Acquire long-lived resources; raise ResourceError on failure."""
        ...

    async def close(self) -> None:
        ...

    async def new_session(self) -> RenderSession:
        """Open a fresh page; raise ResourceError when capacity is exhausted."""
        ...

    async def __aenter__(self) -> "Renderer":
        ...

    async def __aexit__(self, *exc_info: Any) -> None:
        ...
