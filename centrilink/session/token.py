"""Bearer token sources.

A token source is anything with an ``async fetch() -> str | None`` method.
It is called once before every connection attempt and must fail soft:
``None`` means "no credential right now" and makes the session retry after a
short delay.
"""

import asyncio
from collections.abc import Sequence
from typing import Any, Protocol, runtime_checkable

import aiohttp
from opentelemetry._logs import LoggerProvider

from ..mechanism import CredentialUnavailable
from ..telemetry import OTelLogger, get_default_providers
from ..utils import get_short_error_info


@runtime_checkable
class TokenSource(Protocol):
    async def fetch(self) -> str | None: ...


class StaticTokenSource:
    """Always returns the same credential (or None)."""

    def __init__(self, token: str | None):
        self._token = token

    async def fetch(self) -> str | None:
        return self._token


class HttpTokenSource:
    """Fetch a short-lived token from a JSON HTTP endpoint.

    Every call performs a fresh ``GET``; nothing is cached.

    Parameters:
        url: Endpoint returning a JSON document that contains the token.
        path: Keys leading to the token inside the document.
        timeout: Total request timeout in seconds.
        headers: Extra request headers.
        session: Optional shared ``aiohttp.ClientSession``. When omitted a
            session is created and closed for each fetch.
        logger_provider: Optional OTel LoggerProvider.

    Example:
        >>> source = HttpTokenSource(
        ...     "https://example.app/current-state",
        ...     path=("data", "main", "centrifugeToken"),
        ... )
        >>> token = await source.fetch()
    """

    def __init__(
        self,
        url: str,
        path: Sequence[str] = ("data", "main", "centrifugeToken"),
        timeout: float = 10.0,
        headers: dict[str, str] | None = None,
        session: aiohttp.ClientSession | None = None,
        logger_provider: LoggerProvider | None = None,
    ):
        self.url = url
        self.path = tuple(path)
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._headers = {"Cache-Control": "no-store", **(headers or {})}
        self._session = session

        if logger_provider is None:
            _, logger_provider = get_default_providers("centrilink")
        self._otel_logger = OTelLogger(
            logger_provider.get_logger("centrilink.token"),
            source=f"HttpTokenSource:{url}",
        )

    async def fetch(self) -> str | None:
        try:
            return await self._fetch()
        except CredentialUnavailable as e:
            self._otel_logger.warning(f"No token in response: {e.message}")
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            self._otel_logger.warning(f"Token fetch failed: {get_short_error_info(e)}")
        except ValueError as e:
            self._otel_logger.warning(
                f"Token endpoint returned invalid JSON: {get_short_error_info(e)}"
            )
        return None

    async def _fetch(self) -> str:
        if self._session is not None:
            document = await self._get_json(self._session)
        else:
            async with aiohttp.ClientSession(timeout=self._timeout) as session:
                document = await self._get_json(session)
        return extract_token(document, self.path)

    async def _get_json(self, session: aiohttp.ClientSession) -> Any:
        async with session.get(
            self.url, headers=self._headers, timeout=self._timeout
        ) as response:
            response.raise_for_status()
            return await response.json(content_type=None)


def extract_token(document: Any, path: Sequence[str]) -> str:
    """Walk ``path`` into ``document`` and return a non-empty string token.

    Raises:
        CredentialUnavailable: If any key is missing or the value is not a
            non-empty string.
    """
    node = document
    for key in path:
        if not isinstance(node, dict) or key not in node:
            raise CredentialUnavailable(
                f"missing key '{key}' in {'.'.join(path)}", source="HttpTokenSource"
            )
        node = node[key]
    if not isinstance(node, str) or not node:
        raise CredentialUnavailable(
            f"{'.'.join(path)} is not a non-empty string", source="HttpTokenSource"
        )
    return node
