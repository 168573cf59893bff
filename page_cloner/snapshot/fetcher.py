"""
Resource fetcher routing requests through cross-origin relay services.

Uses aiohttp for asynchronous requests with bounded retries, exponential
backoff and per-attempt timeouts.
"""

import asyncio
import json
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List, Optional, Sequence, Union
from urllib.parse import quote, urlparse

import aiohttp
from aiohttp import ClientTimeout, ClientError, ClientResponseError

from ..utils.log import get_logger
from ..utils.paths import guess_mime_type
from ..utils.constants import (
    DEFAULT_USER_AGENT,
    DEFAULT_TIMEOUT,
    DEFAULT_ATTEMPTS,
    DEFAULT_BACKOFF_BASE,
    DEFAULT_BACKOFF_FACTOR,
)


# Characters left unescaped by JavaScript's encodeURIComponent
_URI_COMPONENT_SAFE = "-_.!~*'()"


class FetchError(Exception):
    """Base class for resource retrieval failures."""


class RetryExhaustedError(FetchError):
    """Every attempt of the retrying fetch primitive failed."""

    def __init__(self, url: str, attempts: int, last_error: Optional[BaseException] = None):
        super().__init__(f"Failed to fetch after {attempts} attempts")
        self.url = url
        self.attempts = attempts
        self.last_error = last_error


class EnvelopeError(FetchError):
    """A relay answered with a payload that does not match its envelope."""


class ProxyExhaustedError(FetchError):
    """No relay endpoint could deliver the resource."""

    def __init__(self, url: str, attempted: Iterable[str]):
        super().__init__("All proxy services failed")
        self.url = url
        self.attempted = list(attempted)


class EnvelopeKind(Enum):
    """How a relay wraps the payload it returns."""

    RAW = "raw"
    JSON_CONTENTS = "json_contents"


@dataclass
class RawResponse:
    """Body and content metadata of one successful HTTP response."""

    body: bytes
    content_type: Optional[str] = None
    charset: Optional[str] = None

    def text(self) -> str:
        """Decode the body using the declared charset, falling back to UTF-8."""
        try:
            return self.body.decode(self.charset or 'utf-8', errors='replace')
        except LookupError:
            return self.body.decode('utf-8', errors='replace')


@dataclass
class BinaryContent:
    """Opaque binary payload with its MIME type."""

    data: bytes
    mime_type: str


FetchResult = Union[str, BinaryContent, None]


@dataclass(frozen=True)
class ProxyEndpoint:
    """
    A relay service that fetches a URL on our behalf.

    ``template`` (and ``binary_template``) contain a ``{url}`` placeholder
    that receives the percent-encoded target URL.
    """

    name: str
    template: str
    envelope: EnvelopeKind = EnvelopeKind.RAW
    binary_template: Optional[str] = None

    @staticmethod
    def _fill(template: str, target: str) -> str:
        return template.replace('{url}', quote(target, safe=_URI_COMPONENT_SAFE))

    def build_url(self, target: str) -> str:
        """Build the relay URL for a textual request."""
        return self._fill(self.template, target)

    def build_binary_url(self, target: str) -> Optional[str]:
        """
        Build the relay URL for a binary request.

        Returns None when the endpoint can only deliver JSON-wrapped text.
        """
        if self.binary_template:
            return self._fill(self.binary_template, target)
        if self.envelope is EnvelopeKind.RAW:
            return self._fill(self.template, target)
        return None

    def unwrap(self, response: RawResponse) -> str:
        """
        Extract the textual payload from a relay response.

        Raises:
            EnvelopeError: If a JSON envelope is malformed or has no contents
        """
        if self.envelope is EnvelopeKind.RAW:
            return response.text()

        try:
            data = json.loads(response.text())
        except ValueError as e:
            raise EnvelopeError(f"{self.name} returned invalid JSON: {e}") from e

        contents = data.get('contents') if isinstance(data, dict) else None
        if contents is None:
            raise EnvelopeError(f"{self.name} returned no contents")

        return contents if isinstance(contents, str) else str(contents)


DEFAULT_PROXY_ENDPOINTS = (
    ProxyEndpoint(
        name="allorigins",
        template="https://api.allorigins.win/get?url={url}&charset=UTF-8",
        envelope=EnvelopeKind.JSON_CONTENTS,
        binary_template="https://api.allorigins.win/raw?url={url}",
    ),
    ProxyEndpoint(
        name="htmldriven",
        template="https://cors-proxy.htmldriven.com/?url={url}",
    ),
    ProxyEndpoint(
        name="codetabs",
        template="https://api.codetabs.com/v1/proxy?quest={url}",
    ),
)


def parse_endpoint(value: str) -> ProxyEndpoint:
    """
    Parse a relay endpoint given on the command line.

    ``json+https://relay/get?url={url}`` declares a JSON envelope with a
    ``contents`` field; a bare template declares a raw relay.

    Raises:
        ValueError: If the template has no ``{url}`` placeholder
    """
    template = value.strip()
    envelope = EnvelopeKind.RAW

    if template.startswith('json+'):
        envelope = EnvelopeKind.JSON_CONTENTS
        template = template[len('json+'):]

    if '{url}' not in template:
        raise ValueError(f"Proxy template must contain '{{url}}': {value}")

    name = urlparse(template).netloc or template
    return ProxyEndpoint(name=name, template=template, envelope=envelope)


class Fetcher:
    """
    Fetches resources directly or through an ordered list of relays.

    Must be entered as an async context manager unless an open
    ``aiohttp.ClientSession`` is supplied.
    """

    def __init__(
        self,
        endpoints: Sequence[ProxyEndpoint] = DEFAULT_PROXY_ENDPOINTS,
        attempts: int = DEFAULT_ATTEMPTS,
        timeout: float = DEFAULT_TIMEOUT,
        backoff_base: float = DEFAULT_BACKOFF_BASE,
        backoff_factor: float = DEFAULT_BACKOFF_FACTOR,
        direct_binary: bool = True,
        direct_text: bool = False,
        concurrency: Optional[int] = None,
        user_agent: str = DEFAULT_USER_AGENT,
        session: Optional[aiohttp.ClientSession] = None
    ):
        """
        Initialize the fetcher.

        Args:
            endpoints: Relay endpoints in priority order
            attempts: Attempts per request made by the retry primitive
            timeout: Timeout of a single attempt in seconds
            backoff_base: Delay after the first failed attempt in seconds
            backoff_factor: Growth factor of the delay between attempts
            direct_binary: Try a direct request before relays for binary resources
            direct_text: Try a direct request before relays for textual resources
            concurrency: Maximum simultaneous fetches, None for no limit
            user_agent: User agent string for requests
            session: Existing session to use instead of opening one
        """
        if attempts < 1:
            raise ValueError("attempts must be at least 1")

        self.endpoints = tuple(endpoints)
        self.attempts = attempts
        self.timeout = ClientTimeout(total=timeout)
        self.backoff_base = backoff_base
        self.backoff_factor = backoff_factor
        self.direct_binary = direct_binary
        self.direct_text = direct_text
        self.user_agent = user_agent
        self.logger = get_logger("fetcher")

        self._session = session
        self._owns_session = session is None
        self._semaphore = asyncio.Semaphore(concurrency) if concurrency else None
        self._sleep = asyncio.sleep

    async def __aenter__(self) -> "Fetcher":
        if self._session is None:
            self._session = aiohttp.ClientSession(
                headers={"User-Agent": self.user_agent}
            )
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the session if this fetcher opened it."""
        if self._owns_session and self._session is not None:
            await self._session.close()
            self._session = None

    @property
    def session(self) -> aiohttp.ClientSession:
        if self._session is None:
            raise RuntimeError("Fetcher is not open; use 'async with Fetcher(...)'")
        return self._session

    def backoff_delay(self, attempt: int) -> float:
        """Delay in seconds after the given zero-based failed attempt."""
        return self.backoff_base * (self.backoff_factor ** attempt)

    async def fetch_resource(self, url: str, binary: bool = False) -> FetchResult:
        """
        Fetch a resource as text or as binary content.

        Args:
            url: Absolute URL of the resource
            binary: Return BinaryContent instead of decoded text

        Returns:
            Text, BinaryContent, or None when a binary resource is unavailable

        Raises:
            ProxyExhaustedError: If a textual resource could not be fetched
        """
        if self._semaphore is None:
            return await self._fetch(url, binary)

        async with self._semaphore:
            return await self._fetch(url, binary)

    async def _fetch(self, url: str, binary: bool) -> FetchResult:
        if binary:
            return await self._fetch_binary(url)
        return await self._fetch_text(url)

    async def _fetch_text(self, url: str) -> str:
        if self.direct_text:
            try:
                response = await self.fetch_with_retry(url, attempts=1)
                return response.text()
            except FetchError as e:
                self.logger.debug(f"Direct fetch failed for {url}: {e}")

        attempted: List[str] = []
        for endpoint in self.endpoints:
            attempted.append(endpoint.name)
            try:
                response = await self.fetch_with_retry(endpoint.build_url(url))
                return endpoint.unwrap(response)
            except FetchError as e:
                self.logger.warning(f"Proxy failed: {endpoint.name} for {url} ({e})")

        raise ProxyExhaustedError(url, attempted)

    async def _fetch_binary(self, url: str) -> Optional[BinaryContent]:
        if self.direct_binary:
            try:
                response = await self.fetch_with_retry(url, attempts=1)
                return BinaryContent(response.body, guess_mime_type(url, response.content_type))
            except FetchError as e:
                self.logger.debug(f"Direct fetch failed for {url}: {e}")

        for endpoint in self.endpoints:
            relay_url = endpoint.build_binary_url(url)
            if relay_url is None:
                continue
            try:
                response = await self.fetch_with_retry(relay_url)
                return BinaryContent(response.body, guess_mime_type(url, response.content_type))
            except FetchError as e:
                self.logger.debug(f"Proxy failed: {endpoint.name} for {url} ({e})")

        self.logger.warning(f"Binary resource unavailable: {url}")
        return None

    async def fetch_with_retry(self, url: str, attempts: Optional[int] = None) -> RawResponse:
        """
        Request a URL, retrying failed attempts with exponential backoff.

        Args:
            url: URL to request
            attempts: Number of attempts, defaults to the configured bound

        Returns:
            RawResponse of the first successful attempt

        Raises:
            RetryExhaustedError: After the final attempt fails
        """
        attempts = attempts or self.attempts
        last_error: Optional[BaseException] = None

        for attempt in range(attempts):
            try:
                return await self._request(url)
            except (ClientError, asyncio.TimeoutError) as e:
                last_error = e
                self.logger.debug(f"Attempt {attempt + 1} failed for {url}: {e!r}")

            if attempt < attempts - 1:
                await self._sleep(self.backoff_delay(attempt))

        raise RetryExhaustedError(url, attempts, last_error) from last_error

    async def _request(self, url: str) -> RawResponse:
        """Perform a single request; any non-2xx status is an error."""
        async with self.session.get(
            url,
            timeout=self.timeout,
            allow_redirects=True
        ) as response:
            if not 200 <= response.status < 300:
                raise ClientResponseError(
                    response.request_info,
                    response.history,
                    status=response.status,
                    message=response.reason or f"HTTP {response.status}",
                )

            body = await response.read()
            return RawResponse(
                body=body,
                content_type=response.content_type,
                charset=response.charset,
            )
