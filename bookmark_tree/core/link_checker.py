"""
Dead-Link Checker

Probes every bookmark URL with bounded concurrency and classifies each
outcome on its own. A failed or timed-out probe only affects that
bookmark's status; the batch always completes. Folder flags are computed
after all probes have settled.
"""

from __future__ import annotations

import asyncio
import logging
import socket
import time
from asyncio import Semaphore
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Set, Tuple

import aiohttp

from .data_models import Folder, Tree
from .tree_queries import iter_bookmarks

# HEAD responses with these codes are retried as GET
HEAD_REJECTED_CODES = {405, 501}

PROBED_SCHEMES = ("http://", "https://")

DEFAULT_USER_AGENT = "Mozilla/5.0 (compatible; bookmark-tree link checker)"


class LinkStatus(Enum):
    """Outcome of probing one bookmark URL."""

    OK = "ok"
    TIMEOUT = "timeout"
    DNS_ERROR = "dns_error"
    HTTP_ERROR = "http_error"
    UNKNOWN = "unknown"

    @property
    def is_dead(self) -> bool:
        return self in (LinkStatus.TIMEOUT, LinkStatus.DNS_ERROR, LinkStatus.HTTP_ERROR)


@dataclass
class ProbeResult:
    """Result of a single URL probe."""

    url: str
    status: LinkStatus
    status_code: Optional[int] = None
    error_message: Optional[str] = None
    response_time: float = 0.0


@dataclass
class LinkCheckReport:
    """Per-bookmark statuses plus the folders that contain dead links."""

    statuses: Dict[str, LinkStatus] = field(default_factory=dict)
    results: Dict[str, ProbeResult] = field(default_factory=dict)
    flagged_folders: Set[str] = field(default_factory=set)
    processing_time: float = 0.0

    @property
    def dead_ids(self) -> List[str]:
        return [item_id for item_id, status in self.statuses.items() if status.is_dead]

    def to_dict(self) -> Dict[str, str]:
        """Flatten to id -> status string, folders marked as "dead"."""
        flat = {item_id: status.value for item_id, status in self.statuses.items()}
        for folder_id in self.flagged_folders:
            flat[folder_id] = "dead"
        return flat


def classify_exception(error: BaseException) -> LinkStatus:
    """
    Map a probe exception to a link status.

    Args:
        error: Exception raised while probing

    Returns:
        TIMEOUT, DNS_ERROR or UNKNOWN
    """
    if isinstance(error, asyncio.TimeoutError):
        return LinkStatus.TIMEOUT

    if isinstance(error, aiohttp.ClientConnectorError):
        if isinstance(error.os_error, socket.gaierror):
            return LinkStatus.DNS_ERROR

    message = str(error).lower()
    if "dns" in message or "name resolution" in message or "name or service not known" in message:
        return LinkStatus.DNS_ERROR

    return LinkStatus.UNKNOWN


def classify_status_code(status_code: int) -> LinkStatus:
    return LinkStatus.HTTP_ERROR if status_code >= 400 else LinkStatus.OK


def should_probe(url: str) -> bool:
    return bool(url) and url.strip().lower().startswith(PROBED_SCHEMES)


def flag_folders(tree: Tree, statuses: Dict[str, LinkStatus]) -> Set[str]:
    """
    Find folders with at least one dead bookmark anywhere below them.

    Args:
        tree: Tree that was checked
        statuses: Bookmark id -> status

    Returns:
        Ids of the flagged folders
    """
    flagged: Set[str] = set()

    def _visit(items) -> bool:
        any_dead = False
        for item in items:
            if isinstance(item, Folder):
                if _visit(item.children):
                    flagged.add(item.id)
                    any_dead = True
            else:
                status = statuses.get(item.id)
                if status is not None and status.is_dead:
                    any_dead = True
        return any_dead

    _visit(tree)
    return flagged


class LinkChecker:
    """Asynchronous dead-link checker built on aiohttp."""

    def __init__(
        self,
        timeout: float = 10.0,
        max_concurrent: int = 10,
        verify_ssl: bool = True,
        user_agent: str = DEFAULT_USER_AGENT,
    ):
        """
        Initialize the link checker.

        Args:
            timeout: Per-probe timeout in seconds
            max_concurrent: Maximum probes in flight
            verify_ssl: Whether to verify SSL certificates
            user_agent: User-Agent header sent with each probe
        """
        self.timeout = timeout
        self.max_concurrent = max_concurrent
        self.verify_ssl = verify_ssl
        self.user_agent = user_agent
        self.logger = logging.getLogger(__name__)

    async def check_tree(self, tree: Tree) -> LinkCheckReport:
        """
        Probe every bookmark in the tree.

        Args:
            tree: Tree to check

        Returns:
            LinkCheckReport keyed by bookmark id
        """
        start_time = time.time()
        targets = [(bookmark.id, bookmark.url) for bookmark in iter_bookmarks(tree)]

        self.logger.info(
            f"Checking {len(targets)} links (max_concurrent={self.max_concurrent}, "
            f"timeout={self.timeout}s)"
        )

        results = await self.probe_urls(targets)

        report = LinkCheckReport(
            statuses={item_id: result.status for item_id, result in results.items()},
            results=results,
        )
        report.flagged_folders = flag_folders(tree, report.statuses)
        report.processing_time = time.time() - start_time

        self.logger.info(
            f"Link check completed: {len(report.dead_ids)}/{len(targets)} dead, "
            f"{len(report.flagged_folders)} folders flagged in "
            f"{report.processing_time:.2f}s"
        )
        return report

    def check_tree_sync(self, tree: Tree) -> LinkCheckReport:
        """Blocking wrapper around check_tree()."""
        return asyncio.run(self.check_tree(tree))

    async def probe_urls(self, targets: List[Tuple[str, str]]) -> Dict[str, ProbeResult]:
        """
        Probe (id, url) pairs with bounded concurrency.

        Args:
            targets: List of (bookmark id, url)

        Returns:
            Dictionary of bookmark id -> ProbeResult
        """
        if not targets:
            return {}

        semaphore = Semaphore(min(self.max_concurrent, len(targets)))
        connector = aiohttp.TCPConnector(
            limit=self.max_concurrent,
            limit_per_host=5,
            ttl_dns_cache=300,
            ssl=self.verify_ssl,
        )

        async with aiohttp.ClientSession(
            connector=connector, headers={"User-Agent": self.user_agent}
        ) as session:

            async def probe_with_semaphore(url: str) -> ProbeResult:
                async with semaphore:
                    return await self.probe_url(session, url)

            tasks = [probe_with_semaphore(url) for _, url in targets]
            outcomes = await asyncio.gather(*tasks, return_exceptions=True)

        results: Dict[str, ProbeResult] = {}
        for (item_id, url), outcome in zip(targets, outcomes):
            if isinstance(outcome, BaseException):
                self.logger.warning(f"Probe for {url} failed unexpectedly: {outcome}")
                outcome = ProbeResult(
                    url=url, status=LinkStatus.UNKNOWN, error_message=str(outcome)
                )
            results[item_id] = outcome
        return results

    async def probe_url(self, session: aiohttp.ClientSession, url: str) -> ProbeResult:
        """
        Probe a single URL.

        Args:
            session: Open aiohttp session
            url: URL to probe

        Returns:
            ProbeResult; never raises for network failures
        """
        if not should_probe(url):
            return ProbeResult(
                url=url,
                status=LinkStatus.UNKNOWN,
                error_message="URL type not supported for checking",
            )

        start_time = time.time()
        timeout = aiohttp.ClientTimeout(total=self.timeout)

        try:
            status_code = await self._request(session, "HEAD", url, timeout)
            if status_code in HEAD_REJECTED_CODES:
                status_code = await self._request(session, "GET", url, timeout)
        except asyncio.TimeoutError:
            return ProbeResult(
                url=url,
                status=LinkStatus.TIMEOUT,
                error_message=f"Timeout after {self.timeout}s",
                response_time=time.time() - start_time,
            )
        except aiohttp.ClientError as e:
            return ProbeResult(
                url=url,
                status=classify_exception(e),
                error_message=str(e),
                response_time=time.time() - start_time,
            )

        status = classify_status_code(status_code)
        return ProbeResult(
            url=url,
            status=status,
            status_code=status_code,
            error_message=f"HTTP {status_code}" if status.is_dead else None,
            response_time=time.time() - start_time,
        )

    async def _request(
        self,
        session: aiohttp.ClientSession,
        method: str,
        url: str,
        timeout: aiohttp.ClientTimeout,
    ) -> int:
        async with session.request(
            method, url, timeout=timeout, allow_redirects=True
        ) as response:
            return response.status
