import asyncio

import pytest

from catalog_probe.classifiers.base import OutcomeKind
from catalog_probe.engines.session import ProbeSession
from catalog_probe.errors import ResourceError

from fakes import MULTI_FRAME, NO_MATCH_FRAME, FakePageSpec, FakeRenderer, FakeSite


def _session(**kwargs) -> ProbeSession:
    kwargs.setdefault("site_root", "https://catalog.test/")
    return ProbeSession(**kwargs)


def _run(session, renderer, code):
    return asyncio.run(session.run(renderer, code))


def test_single_product_probe_closes_page():
    site = FakeSite()
    renderer = FakeRenderer(site)
    outcome = _run(_session(), renderer, "abc001")

    assert outcome.kind is OutcomeKind.SINGLE
    assert outcome.count == 1
    assert outcome.found
    assert site.visits == ["abc001"]
    assert renderer.pages[0].closed


def test_counts_multiple_products():
    site = FakeSite(pages={"dtw004": FakePageSpec(frame_text=MULTI_FRAME)})
    outcome = _run(_session(), FakeRenderer(site), "dtw004")
    assert outcome.kind is OutcomeKind.MULTIPLE
    assert outcome.count == 2


def test_navigation_failure_is_error_and_page_released():
    site = FakeSite(pages={"bad": FakePageSpec(nav_error="net::ERR_NAME_NOT_RESOLVED")})
    renderer = FakeRenderer(site)
    outcome = _run(_session(), renderer, "bad")

    assert outcome.kind is OutcomeKind.ERROR
    assert "ERR_NAME_NOT_RESOLVED" in outcome.detail
    assert renderer.pages[0].closed
    assert site.active == 0


def test_frame_timeout_is_indeterminate_not_error():
    site = FakeSite(pages={"nbastwax016": FakePageSpec(frame_text=None)})
    renderer = FakeRenderer(site)
    outcome = _run(_session(), renderer, "nbastwax016")

    assert outcome.kind is OutcomeKind.INDETERMINATE
    assert not outcome.found
    assert renderer.pages[0].closed


def test_frame_with_unexpected_url_counts_as_absent():
    site = FakeSite(default=FakePageSpec(frame_url="https://ads.test/banner.html"))
    outcome = _run(_session(), FakeRenderer(site), "abc")
    assert outcome.kind is OutcomeKind.INDETERMINATE


def test_extraction_failure_is_error():
    site = FakeSite(default=FakePageSpec(extract_error="Frame was detached"))
    renderer = FakeRenderer(site)
    outcome = _run(_session(), renderer, "abc")

    assert outcome.kind is OutcomeKind.ERROR
    assert outcome.detail == "Frame was detached"
    assert renderer.pages[0].closed


def test_no_match_frame():
    site = FakeSite(default=FakePageSpec(frame_text=NO_MATCH_FRAME))
    outcome = _run(_session(), FakeRenderer(site), "zzz")
    assert outcome.kind is OutcomeKind.NO_MATCH
    assert not outcome.found


def test_settle_delay_only_when_configured():
    site = FakeSite()
    _run(_session(), FakeRenderer(site), "a")
    assert site.pauses == []

    _run(_session(settle_ms=2000), FakeRenderer(site), "b")
    assert site.pauses == [2000]


def test_settle_delay_skipped_when_frame_absent():
    site = FakeSite(default=FakePageSpec(frame_text=None))
    _run(_session(settle_ms=2000), FakeRenderer(site), "a")
    assert site.pauses == []


def test_resource_error_propagates_to_caller():
    renderer = FakeRenderer(FakeSite(), fail_sessions=1)
    with pytest.raises(ResourceError):
        _run(_session(), renderer, "abc")


def test_page_close_failure_keeps_outcome():
    site = FakeSite()
    renderer = FakeRenderer(site)

    async def _probe():
        page_close_calls = []

        original = renderer.new_session

        async def new_session():
            page = await original()

            async def broken_close():
                page_close_calls.append(True)
                raise RuntimeError("target closed")

            page.close = broken_close
            return page

        renderer.new_session = new_session
        outcome = await _session().run(renderer, "abc")
        return outcome, page_close_calls

    outcome, calls = asyncio.run(_probe())
    assert outcome.kind is OutcomeKind.SINGLE
    assert calls == [True]


def test_code_is_appended_to_site_root():
    site = FakeSite()
    _run(_session(site_root="https://catalog.test"), FakeRenderer(site), "qv002")
    assert site.visits == ["qv002"]
