"""
Async client for the Bitnodes snapshot API.
"""

import asyncio
import logging
import time
from typing import Any, Dict, Optional

import aiohttp
from aiohttp import ClientSession, ClientTimeout, ClientError

from .models import Snapshot, SnapshotListing
from ..utils.monitoring import get_monitor


class ApiError(Exception):
    """Raised when a request fails or returns an unusable body."""

    def __init__(self, url: str, message: str, status_code: int = 0):
        super().__init__(f"{message} ({url})")
        self.url = url
        self.status_code = status_code


class SnapshotApiClient:
    """
    Fetches snapshot JSON with a shared session, timeout and request statistics.
    """

    def __init__(self, base_url: str, user_agent: str, request_timeout: int = 60):
        self.base_url = base_url.rstrip('/')
        self.user_agent = user_agent
        self.request_timeout = request_timeout

        self.logger = logging.getLogger(__name__)
        self.session: Optional[ClientSession] = None

        # Statistics
        self.stats = {
            'total_requests': 0,
            'successful_requests': 0,
            'failed_requests': 0,
            'total_fetch_time': 0.0
        }

    async def __aenter__(self):
        """Async context manager entry."""
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()

    async def start(self):
        """Initialize the client session."""
        if self.session is None:
            timeout = ClientTimeout(total=self.request_timeout)
            headers = {'User-Agent': self.user_agent, 'Accept': 'application/json'}

            self.session = aiohttp.ClientSession(
                timeout=timeout,
                headers=headers,
                connector=aiohttp.TCPConnector(
                    limit=4,
                    ttl_dns_cache=300,
                    use_dns_cache=True
                )
            )
            self.logger.info("SnapshotApiClient session started")

    async def close(self):
        """Close the client session."""
        if self.session:
            await self.session.close()
            self.session = None
            self.logger.info("SnapshotApiClient session closed")

    @property
    def latest_url(self) -> str:
        return f"{self.base_url}/snapshots/latest/"

    @property
    def listing_url(self) -> str:
        return f"{self.base_url}/snapshots/"

    async def get_json(self, url: str, endpoint: str = 'other') -> Any:
        """
        Fetch a URL and decode its JSON body.

        Args:
            url: Absolute URL to fetch
            endpoint: Label used for request metrics

        Returns:
            The decoded JSON document

        Raises:
            ApiError: on transport failure, timeout, non-2xx status or invalid JSON
        """
        if self.session is None:
            raise ApiError(url, "Client session not started")

        start_time = time.time()
        self.stats['total_requests'] += 1

        try:
            async with self.session.get(url) as response:
                if response.status >= 400:
                    raise ApiError(url, f"HTTP {response.status}", response.status)
                data = await response.json(content_type=None)

            self.stats['successful_requests'] += 1
            self.logger.debug(f"Fetched {url} in {time.time() - start_time:.2f}s")
            self._record(endpoint, True)
            return data

        except ApiError:
            self.stats['failed_requests'] += 1
            self._record(endpoint, False)
            raise

        except asyncio.TimeoutError:
            self.stats['failed_requests'] += 1
            self._record(endpoint, False)
            raise ApiError(url, "Request timeout")

        except ClientError as e:
            self.stats['failed_requests'] += 1
            self._record(endpoint, False)
            raise ApiError(url, f"Client error: {e}")

        except ValueError as e:
            self.stats['failed_requests'] += 1
            self._record(endpoint, False)
            raise ApiError(url, f"Invalid JSON: {e}")

        finally:
            self.stats['total_fetch_time'] += time.time() - start_time

    def _record(self, endpoint: str, success: bool):
        monitor = get_monitor()
        if monitor:
            monitor.record_request(endpoint, success)

    async def latest_snapshot(self) -> Snapshot:
        """Fetch the most recent snapshot."""
        data = await self.get_json(self.latest_url, endpoint='latest')
        return Snapshot.from_dict(data)

    async def snapshot_listing(self, url: Optional[str] = None) -> SnapshotListing:
        """Fetch one listing page; the first page when no URL is given."""
        data = await self.get_json(url or self.listing_url, endpoint='listing')
        return SnapshotListing.from_dict(data)

    async def snapshot(self, url: str) -> Snapshot:
        """Fetch the full snapshot behind a listing entry."""
        data = await self.get_json(url, endpoint='snapshot')
        return Snapshot.from_dict(data)

    def get_stats(self) -> Dict[str, Any]:
        """Get client statistics."""
        return self.stats.copy()
