# tests/test_crawler.py
"""Tests for the crawl orchestrator."""

import asyncio
import logging

import pytest

from pagecrawl.constants import PREVENT_NEW_TABS_SCRIPT, NOOP_EVALUATION
from pagecrawl.crawler import CrawlState, PageCrawler, gather_or_cancel, is_redirect_status
from pagecrawl.exceptions import (
    ConfigurationError,
    ExtractionError,
    NavigationError,
    PreparationError,
)
from pagecrawl.link_collector import FIND_LINKS_SCRIPT
from pagecrawl.models import CrawlResult, RedirectResult

from conftest import (
    FakeConsoleMessage,
    FakeDialog,
    FakePageDriver,
    FakeRequest,
    FakeResponse,
)

PREPARATION_CALLS = {
    "evaluate_on_new_document",
    "authenticate",
    "emulate",
    "set_request_interception",
    "set_cache_enabled",
    "set_user_agent",
    "set_extra_headers",
    "set_javascript_enabled",
}

CRAWL_RESULT_KEYS = {
    "timing", "response", "request", "redirectChain",
    "result", "screenshot", "links", "text",
}


class TestCrawlScenarios:
    """End-to-end crawls against the fake driver."""

    @pytest.mark.asyncio
    async def test_successful_crawl(self, driver):
        crawler = PageCrawler(driver, {"url": "http://example.com", "followRedirects": True})

        result = await crawler.crawl()

        assert isinstance(result, CrawlResult)
        assert result.links == ["http://example.com/a", "http://other.com/b"]
        assert result.redirect_chain == []
        assert result.result == {"title": "Example"}
        assert result.screenshot is None
        assert result.text == "<html><body><a href='/a'>a</a></body></html>"
        assert result.response == {
            "ok": True,
            "url": "http://example.com/",
            "status": 200,
            "headers": {"content-type": "text/html"},
        }
        assert result.request == {"headers": {"accept": "text/html"}}
        assert set(result.to_dict()) == CRAWL_RESULT_KEYS
        assert crawler.state == CrawlState.EXTRACTED

    @pytest.mark.asyncio
    async def test_redirect_response_short_circuits(self):
        response = FakeResponse("http://example.com/", status=302, headers={"location": "/login"})
        driver = FakePageDriver(response=response, link_reports=[("/a", True)])
        crawler = PageCrawler(driver, {"url": "http://example.com"})

        result = await crawler.crawl()

        assert isinstance(result, RedirectResult)
        assert set(result.to_dict()) == {"timing", "response", "request"}
        assert result.response["status"] == 302
        assert crawler.state == CrawlState.REDIRECTED
        # No wait gate and no extraction
        assert "wait_for" not in driver.call_names()
        assert "screenshot" not in driver.call_names()
        assert "expose_function" not in driver.call_names()
        assert "evaluate" not in driver.call_names()

    @pytest.mark.asyncio
    async def test_redirect_skips_configured_wait_gate(self):
        response = FakeResponse("http://example.com/", status=301)
        driver = FakePageDriver(response=response)
        crawler = PageCrawler(driver, {
            "url": "http://example.com",
            "waitFor": {"selectorOrFunctionOrTimeout": "#main"},
        })

        await crawler.crawl()

        assert driver.called("wait_for") == []

    @pytest.mark.parametrize("status,expected", [
        (299, False), (300, True), (304, True), (399, True), (400, False),
    ])
    def test_redirect_status_bounds(self, status, expected):
        assert is_redirect_status(status) is expected

    @pytest.mark.asyncio
    async def test_timing_is_ordered(self, driver):
        result = await PageCrawler(driver, {"url": "http://example.com"}).crawl()
        assert result.timing.start <= result.timing.end

    @pytest.mark.asyncio
    async def test_redirect_chain_in_result(self):
        hop = FakeRequest("http://example.com/old", headers={"h": "1"})
        hop._response = FakeResponse("http://example.com/old", status=301, request=hop)
        final = FakeRequest("http://example.com/new", redirect_chain=[hop])
        response = FakeResponse("http://example.com/new", status=200, request=final)
        driver = FakePageDriver(response=response)

        result = await PageCrawler(driver, {"url": "http://example.com/old"}).crawl()

        assert [h.url for h in result.redirect_chain] == ["http://example.com/old"]
        assert result.redirect_chain[0].response["status"] == 301


class TestPreparation:
    """Test cases for the preparation phase."""

    @pytest.mark.asyncio
    async def test_minimal_preparation(self, driver):
        await PageCrawler(driver, {"url": "http://example.com"}).crawl()

        assert driver.called("evaluate_on_new_document") == [(PREVENT_NEW_TABS_SCRIPT,)]
        assert driver.called("set_request_interception") == [(False,)]
        for skipped in ("authenticate", "emulate", "set_cache_enabled", "set_user_agent",
                        "set_extra_headers", "set_javascript_enabled"):
            assert driver.called(skipped) == []

    @pytest.mark.asyncio
    async def test_full_preparation(self, driver):
        await PageCrawler(driver, {
            "url": "http://example.com",
            "username": "bob",
            "password": "secret",
            "device": "iPhone 13",
            "followRedirects": False,
            "browserCache": False,
            "userAgent": "TestBot/1.0",
            "extraHeaders": {"X-Test": "1"},
            "javaScriptEnabled": False,
        }).crawl()

        assert driver.called("authenticate") == [("bob", "secret")]
        assert driver.called("emulate") == [("iPhone 13",)]
        assert driver.called("set_request_interception") == [(True,)]
        assert driver.called("set_cache_enabled") == [(False,)]
        assert driver.called("set_user_agent") == [("TestBot/1.0",)]
        assert driver.called("set_extra_headers") == [({"X-Test": "1"},)]
        assert driver.called("set_javascript_enabled") == [(False,)]

    @pytest.mark.asyncio
    async def test_empty_extra_headers_skipped(self, driver):
        await PageCrawler(driver, {"url": "http://example.com", "extraHeaders": {}}).crawl()
        assert driver.called("set_extra_headers") == []

    @pytest.mark.asyncio
    async def test_preparation_completes_before_navigation(self, driver):
        await PageCrawler(driver, {"url": "http://example.com", "userAgent": "UA"}).crawl()

        names = driver.call_names()
        navigate_at = names.index("navigate")
        assert all(names.index(name) < navigate_at for name in PREPARATION_CALLS if name in names)

    @pytest.mark.asyncio
    async def test_preparation_failure_aborts(self, driver):
        driver.failures["set_user_agent"] = RuntimeError("target closed")
        crawler = PageCrawler(driver, {"url": "http://example.com", "userAgent": "UA"})

        with pytest.raises(PreparationError) as excinfo:
            await crawler.crawl()

        assert isinstance(excinfo.value.__cause__, RuntimeError)
        assert driver.called("navigate") == []
        assert crawler.state == CrawlState.INIT

    @pytest.mark.asyncio
    async def test_unknown_device_is_preparation_error(self, driver):
        driver.failures["emulate"] = ConfigurationError("Unknown device profile: 'Toaster'")

        with pytest.raises(PreparationError):
            await PageCrawler(driver, {"url": "http://example.com", "device": "Toaster"}).crawl()


class TestNavigation:
    """Test cases for the navigation phase."""

    @pytest.mark.asyncio
    async def test_navigation_options(self, driver):
        await PageCrawler(driver, {
            "url": "http://example.com",
            "timeout": 1234,
            "waitUntil": "domcontentloaded",
        }).crawl()

        assert driver.called("navigate") == [("http://example.com", 1234, "domcontentloaded")]

    @pytest.mark.asyncio
    async def test_navigation_error_propagates_unchanged(self, driver):
        error = NavigationError("net::ERR_NAME_NOT_RESOLVED", url="http://example.com")
        driver.failures["navigate"] = error

        with pytest.raises(NavigationError) as excinfo:
            await PageCrawler(driver, {"url": "http://example.com"}).crawl()

        assert excinfo.value is error

    @pytest.mark.asyncio
    async def test_other_navigation_failures_wrapped(self, driver):
        driver.failures["navigate"] = asyncio.TimeoutError()

        with pytest.raises(NavigationError):
            await PageCrawler(driver, {"url": "http://example.com"}).crawl()

    @pytest.mark.asyncio
    async def test_missing_response(self):
        driver = FakePageDriver(response=None)

        with pytest.raises(NavigationError, match="no response"):
            await PageCrawler(driver, {"url": "http://example.com"}).crawl()


class TestExtraction:
    """Test cases for the wait gate and extraction phase."""

    @pytest.mark.asyncio
    async def test_no_wait_gate_by_default(self, driver):
        await PageCrawler(driver, {"url": "http://example.com"}).crawl()
        assert driver.called("wait_for") == []

    @pytest.mark.asyncio
    async def test_wait_gate_runs_before_extraction(self, driver):
        await PageCrawler(driver, {
            "url": "http://example.com",
            "waitFor": {
                "selectorOrFunctionOrTimeout": "(n) => document.links.length > n",
                "options": {"timeout": 1000},
                "args": [2],
            },
        }).crawl()

        assert driver.called("wait_for") == [("(n) => document.links.length > n", {"timeout": 1000}, 2)]
        names = driver.call_names()
        assert names.index("wait_for") < names.index("expose_function")
        assert names.index("wait_for") < names.index("evaluate")

    @pytest.mark.asyncio
    async def test_wait_gate_failure(self, driver):
        driver.failures["wait_for"] = RuntimeError("waiting for selector timed out")

        with pytest.raises(ExtractionError):
            await PageCrawler(driver, {
                "url": "http://example.com",
                "waitFor": {"selectorOrFunctionOrTimeout": "#never"},
            }).crawl()

    @pytest.mark.asyncio
    async def test_default_evaluation_is_noop(self, driver):
        await PageCrawler(driver, {"url": "http://example.com"}).crawl()

        evaluated = [args[0] for args in driver.called("evaluate")]
        assert NOOP_EVALUATION in evaluated
        assert FIND_LINKS_SCRIPT in evaluated

    @pytest.mark.asyncio
    async def test_custom_evaluation(self, driver):
        await PageCrawler(driver, {
            "url": "http://example.com",
            "evaluatePage": "() => document.title",
        }).crawl()

        evaluated = [args[0] for args in driver.called("evaluate")]
        assert "() => document.title" in evaluated

    @pytest.mark.asyncio
    async def test_jquery_injected_before_evaluation(self, driver):
        await PageCrawler(driver, {"url": "http://example.com", "jQuery": True}).crawl()

        assert len(driver.called("add_script_tag")) == 1
        names = driver.call_names()
        scrape_at = [i for i, (name, args) in enumerate(driver.calls)
                     if name == "evaluate" and args[0] == NOOP_EVALUATION][0]
        assert names.index("add_script_tag") < scrape_at

    @pytest.mark.asyncio
    async def test_screenshot_when_configured(self, driver):
        result = await PageCrawler(driver, {
            "url": "http://example.com",
            "screenshot": {"full_page": True},
        }).crawl()

        assert result.screenshot == b"\x89PNG"
        assert driver.called("screenshot") == [({"full_page": True},)]

    @pytest.mark.asyncio
    async def test_links_resolved_against_response_url(self):
        response = FakeResponse("http://example.com/docs/", status=200)
        driver = FakePageDriver(response=response, link_reports=[("page", True), ("page", True)])

        result = await PageCrawler(driver, {"url": "http://example.com/docs/"}).crawl()

        assert result.links == ["http://example.com/docs/page"]

    @pytest.mark.asyncio
    async def test_extraction_failure_fails_whole_crawl(self, driver):
        driver.failures["screenshot"] = RuntimeError("screenshot failed")
        crawler = PageCrawler(driver, {"url": "http://example.com", "screenshot": {}})

        with pytest.raises(ExtractionError) as excinfo:
            await crawler.crawl()

        assert "screenshot failed" in str(excinfo.value)
        assert crawler.state == CrawlState.NAVIGATED


class TestGatherOrCancel:
    """Test cases for the phase fan-out helper."""

    @pytest.mark.asyncio
    async def test_results_in_order(self):
        async def value(v):
            await asyncio.sleep(0)
            return v

        assert await gather_or_cancel(value(1), value(2), value(3)) == [1, 2, 3]

    @pytest.mark.asyncio
    async def test_failure_cancels_siblings(self):
        cancelled = []

        async def hang(name):
            try:
                await asyncio.Event().wait()
            except asyncio.CancelledError:
                cancelled.append(name)
                raise

        async def fail():
            await asyncio.sleep(0)
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError, match="boom"):
            await gather_or_cancel(hang("a"), fail(), hang("b"))

        assert sorted(cancelled) == ["a", "b"]

    @pytest.mark.asyncio
    async def test_extraction_failure_cancels_pending_operations(self, driver):
        cancelled = []

        async def hanging_evaluate(expression, *args):
            try:
                await asyncio.Event().wait()
            except asyncio.CancelledError:
                cancelled.append(expression)
                raise

        driver.evaluate = hanging_evaluate
        driver.failures["screenshot"] = RuntimeError("screenshot failed")

        with pytest.raises(ExtractionError):
            await PageCrawler(driver, {"url": "http://example.com", "screenshot": {}}).crawl()

        assert set(cancelled) == {NOOP_EVALUATION, FIND_LINKS_SCRIPT}


class TestRequestInterception:
    """Test cases for the request observer."""

    @pytest.mark.asyncio
    async def test_off_target_document_blanked_before_hook(self, driver):
        calls = []

        def hook(config, request):
            calls.append(request)
            return request.abort()

        PageCrawler(driver, {"url": "http://example.com", "preBrowserRequest": hook})
        request = FakeRequest("http://example.com/elsewhere", resource_type="document")

        await driver.emit("request", request)

        assert request.action == "respond"
        assert request.body == ""
        assert calls == []

    @pytest.mark.asyncio
    async def test_target_document_goes_to_default_hook(self, driver):
        PageCrawler(driver, {"url": "http://example.com"})
        request = FakeRequest("http://example.com/", resource_type="document")

        await driver.emit("request", request)

        assert request.action == "continue"

    @pytest.mark.asyncio
    async def test_subresources_go_to_hook(self, driver):
        seen = []

        def hook(config, request):
            seen.append((config.url, request.url()))
            return request.abort()

        PageCrawler(driver, {"url": "http://example.com", "preBrowserRequest": hook})
        request = FakeRequest("http://cdn.example.com/app.js", resource_type="script")

        await driver.emit("request", request)

        assert request.action == "abort"
        assert seen == [("http://example.com", "http://cdn.example.com/app.js")]

    @pytest.mark.asyncio
    async def test_async_hook_awaited(self, driver):
        async def hook(config, request):
            await asyncio.sleep(0)
            await request.abort()

        PageCrawler(driver, {"url": "http://example.com", "preBrowserRequest": hook})
        request = FakeRequest("http://example.com/logo.png", resource_type="image")

        await driver.emit("request", request)

        assert request.action == "abort"


class TestPageObservers:
    """Test cases for dialog, console and error observers."""

    def test_observers_registered_at_construction(self, driver):
        PageCrawler(driver, {"url": "http://example.com"})
        assert set(driver.handlers) == {"request", "pageerror", "console", "dialog"}

    @pytest.mark.asyncio
    async def test_dialogs_dismissed(self, driver):
        PageCrawler(driver, {"url": "http://example.com"})
        dialog = FakeDialog("confirm", "Leave site?")

        await driver.emit("dialog", dialog)

        assert dialog.dismissed is True

    @pytest.mark.asyncio
    async def test_dismiss_failure_is_logged(self, driver, caplog):
        PageCrawler(driver, {"url": "http://example.com"})

        with caplog.at_level(logging.WARNING, logger="pagecrawl.dialog"):
            await driver.emit("dialog", FakeDialog(fail=True))

        assert "Failed to dismiss" in caplog.text

    @pytest.mark.asyncio
    async def test_console_messages_logged(self, driver, caplog):
        PageCrawler(driver, {"url": "http://example.com"})

        with caplog.at_level(logging.DEBUG, logger="pagecrawl.console"):
            await driver.emit("console", FakeConsoleMessage("warn", "deprecated API"))
            await driver.emit("pageerror", ReferenceError("x is not defined"))

        assert "warn deprecated API at http://example.com" in caplog.text
        assert "x is not defined" in caplog.text


class TestLifecycle:
    """Test cases for crawler lifecycle."""

    @pytest.mark.asyncio
    async def test_context_manager_closes_page(self, driver):
        async with PageCrawler(driver, {"url": "http://example.com"}) as crawler:
            assert crawler.page is driver
        assert driver.closed is True

    def test_invalid_options(self, driver):
        with pytest.raises(ConfigurationError):
            PageCrawler(driver, {"timeout": 1000})
