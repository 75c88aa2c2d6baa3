"""
Tests for the dead-link checker.

HTTP behaviour is exercised against a local aiohttp test server; DNS and
timeout failures are injected with mocks.
"""

import asyncio
import socket
from unittest.mock import Mock, patch

import aiohttp
import pytest
from aiohttp import test_utils, web

from bookmark_tree.core.link_checker import (
    LinkCheckReport,
    LinkChecker,
    LinkStatus,
    ProbeResult,
    classify_exception,
    classify_status_code,
    flag_folders,
    should_probe,
)
from tests.fixtures.test_data import create_sample_tree, make_bookmark, make_folder


def create_app(state=None):
    """Local site with one route per outcome."""
    state = state if state is not None else {}

    async def ok(request):
        return web.Response(text="ok")

    async def missing(request):
        return web.Response(status=404)

    async def broken(request):
        return web.Response(status=500)

    async def head_rejected(request):
        return web.Response(status=405)

    async def slow(request):
        await asyncio.sleep(2)
        return web.Response(text="late")

    async def counted(request):
        state["active"] = state.get("active", 0) + 1
        state["peak"] = max(state.get("peak", 0), state["active"])
        await asyncio.sleep(0.05)
        state["active"] -= 1
        return web.Response(text="ok")

    async def redirect(request):
        raise web.HTTPFound("/ok")

    async def user_agent(request):
        state["user_agent"] = request.headers.get("User-Agent")
        return web.Response(text="ok")

    app = web.Application()
    app.router.add_get("/ok", ok)
    app.router.add_get("/missing", missing)
    app.router.add_get("/broken", broken)
    app.router.add_route("HEAD", "/no-head", head_rejected)
    app.router.add_get("/no-head", ok, allow_head=False)
    app.router.add_get("/slow", slow)
    app.router.add_get("/counted", counted)
    app.router.add_get("/ua", user_agent)
    app.router.add_get("/redirect", redirect)
    return app


class TestClassification:
    """Test mapping of responses and exceptions to statuses."""

    @pytest.mark.parametrize(
        "code,status",
        [(200, LinkStatus.OK), (301, LinkStatus.OK), (399, LinkStatus.OK),
         (400, LinkStatus.HTTP_ERROR), (404, LinkStatus.HTTP_ERROR), (503, LinkStatus.HTTP_ERROR)],
    )
    def test_status_codes(self, code, status):
        assert classify_status_code(code) == status

    def test_timeout(self):
        assert classify_exception(asyncio.TimeoutError()) == LinkStatus.TIMEOUT

    def test_dns_failure(self):
        connection_key = Mock(host="nohost.invalid", port=443, ssl=True)
        error = aiohttp.ClientConnectorError(
            connection_key, socket.gaierror(socket.EAI_NONAME, "Name or service not known")
        )
        assert classify_exception(error) == LinkStatus.DNS_ERROR

    def test_dns_failure_by_message(self):
        assert classify_exception(aiohttp.ClientError("DNS lookup failed")) == LinkStatus.DNS_ERROR

    def test_other_errors_unknown(self):
        assert classify_exception(aiohttp.ClientPayloadError("bad body")) == LinkStatus.UNKNOWN
        assert classify_exception(ValueError("odd")) == LinkStatus.UNKNOWN

    def test_is_dead(self):
        assert LinkStatus.HTTP_ERROR.is_dead
        assert LinkStatus.DNS_ERROR.is_dead
        assert LinkStatus.TIMEOUT.is_dead
        assert not LinkStatus.OK.is_dead
        assert not LinkStatus.UNKNOWN.is_dead

    @pytest.mark.parametrize(
        "url,expected",
        [("https://a.com", True), ("HTTP://a.com", True), ("ftp://a.com", False),
         ("javascript:void(0)", False), ("", False)],
    )
    def test_should_probe(self, url, expected):
        assert should_probe(url) is expected


class TestFlagFolders:
    """Test folder flags computed from bookmark statuses."""

    def test_ancestors_of_dead_bookmarks_flagged(self):
        tree = create_sample_tree()
        statuses = {
            "a": LinkStatus.OK,
            "b": LinkStatus.OK,
            "c": LinkStatus.HTTP_ERROR,
            "d": LinkStatus.UNKNOWN,
            "e": LinkStatus.TIMEOUT,
        }

        assert flag_folders(tree, statuses) == {"work", "projects"}

    def test_no_dead_links(self):
        assert flag_folders(create_sample_tree(), {}) == set()

    def test_report_to_dict(self):
        report = LinkCheckReport(
            statuses={"a": LinkStatus.OK, "c": LinkStatus.DNS_ERROR},
            flagged_folders={"projects"},
        )

        assert report.dead_ids == ["c"]
        assert report.to_dict() == {"a": "ok", "c": "dns_error", "projects": "dead"}


class TestLinkChecker:
    """Test probing against a local server."""

    @pytest.mark.asyncio
    async def test_statuses_per_bookmark(self):
        """Test that each bookmark gets its own status and folders are flagged."""
        async with test_utils.TestServer(create_app()) as server:
            tree = [
                make_folder(
                    "f",
                    "Folder",
                    [
                        make_bookmark("ok", str(server.make_url("/ok"))),
                        make_bookmark("missing", str(server.make_url("/missing"))),
                    ],
                ),
                make_folder("g", "Fine", [make_bookmark("redirect", str(server.make_url("/redirect")))]),
                make_bookmark("broken", str(server.make_url("/broken"))),
                make_bookmark("js", "javascript:alert(1)"),
            ]

            report = await LinkChecker(timeout=5).check_tree(tree)

        assert report.statuses == {
            "ok": LinkStatus.OK,
            "missing": LinkStatus.HTTP_ERROR,
            "redirect": LinkStatus.OK,
            "broken": LinkStatus.HTTP_ERROR,
            "js": LinkStatus.UNKNOWN,
        }
        assert report.results["missing"].status_code == 404
        assert report.flagged_folders == {"f"}
        assert sorted(report.dead_ids) == ["broken", "missing"]

    @pytest.mark.asyncio
    async def test_head_rejection_retried_with_get(self):
        async with test_utils.TestServer(create_app()) as server:
            checker = LinkChecker(timeout=5)
            results = await checker.probe_urls([("x", str(server.make_url("/no-head")))])

        assert results["x"].status == LinkStatus.OK
        assert results["x"].status_code == 200

    @pytest.mark.asyncio
    async def test_slow_response_times_out(self):
        async with test_utils.TestServer(create_app()) as server:
            checker = LinkChecker(timeout=0.3)
            results = await checker.probe_urls(
                [("slow", str(server.make_url("/slow"))), ("ok", str(server.make_url("/ok")))]
            )

        assert results["slow"].status == LinkStatus.TIMEOUT
        assert results["ok"].status == LinkStatus.OK

    @pytest.mark.asyncio
    async def test_concurrency_is_bounded(self):
        state = {}
        async with test_utils.TestServer(create_app(state)) as server:
            checker = LinkChecker(timeout=5, max_concurrent=2)
            targets = [(str(i), str(server.make_url(f"/counted?i={i}"))) for i in range(8)]
            results = await checker.probe_urls(targets)

        assert all(result.status == LinkStatus.OK for result in results.values())
        assert 1 <= state["peak"] <= 2

    @pytest.mark.asyncio
    async def test_user_agent_sent(self):
        state = {}
        async with test_utils.TestServer(create_app(state)) as server:
            checker = LinkChecker(user_agent="bookmark-tree-test/1.0")
            await checker.probe_urls([("x", str(server.make_url("/ua")))])

        assert state["user_agent"] == "bookmark-tree-test/1.0"

    @pytest.mark.asyncio
    async def test_connection_refused_is_unknown(self):
        """Test that a closed port is a per-item failure, not an exception."""
        with socket.socket() as sock:
            sock.bind(("127.0.0.1", 0))
            port = sock.getsockname()[1]

        results = await LinkChecker(timeout=5).probe_urls([("x", f"http://127.0.0.1:{port}/")])

        assert results["x"].status == LinkStatus.UNKNOWN
        assert results["x"].error_message

    @pytest.mark.asyncio
    async def test_injected_timeout(self):
        with patch.object(LinkChecker, "_request", side_effect=asyncio.TimeoutError()):
            results = await LinkChecker(timeout=1).probe_urls([("x", "https://example.com")])

        assert results["x"].status == LinkStatus.TIMEOUT

    @pytest.mark.asyncio
    async def test_unexpected_exception_does_not_abort_batch(self):
        """Test that one crashing probe is reported as unknown and others still run."""
        calls = []

        async def fake_request(self, session, method, url, timeout):
            calls.append(url)
            if "bad" in url:
                raise RuntimeError("unexpected")
            return 200

        with patch.object(LinkChecker, "_request", fake_request):
            results = await LinkChecker().probe_urls(
                [("bad", "https://bad.example"), ("good", "https://good.example")]
            )

        assert results["bad"].status == LinkStatus.UNKNOWN
        assert results["good"].status == LinkStatus.OK
        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_empty_tree(self):
        report = await LinkChecker().check_tree([])
        assert report.statuses == {}
        assert report.flagged_folders == set()

    def test_check_tree_sync(self):
        results = {
            "a": ProbeResult(url="https://x.com", status=LinkStatus.DNS_ERROR),
        }

        async def fake_probe_urls(self, targets):
            return {item_id: results.get(item_id, ProbeResult(url, LinkStatus.OK)) for item_id, url in targets}

        with patch.object(LinkChecker, "probe_urls", fake_probe_urls):
            report = LinkChecker().check_tree_sync(create_sample_tree())

        assert report.statuses["a"] == LinkStatus.DNS_ERROR
        assert report.flagged_folders == {"work"}
        assert len(report.statuses) == 5

    @pytest.mark.network
    @pytest.mark.asyncio
    async def test_unresolvable_host(self):
        results = await LinkChecker(timeout=10).probe_urls(
            [("x", "https://does-not-exist.invalid/")]
        )
        assert results["x"].status == LinkStatus.DNS_ERROR
