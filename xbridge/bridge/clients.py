"""
xbridge Ledger Clients

HTTP plumbing shared by the ledger adapters:

  - ClientRegistry: explicitly owned read-through cache holding one
    ``httpx.AsyncClient`` per endpoint URL. Created by the embedding
    application, passed into adapters, closed with ``aclose()`` or
    ``async with``.
  - request_json: logged request wrapper (``-->`` / ``<--`` lines).
  - EndpointPool: sequential fallback over a ledger's redundant endpoints
    with a fixed per-attempt timeout. Endpoints are never raced.
"""

import asyncio
import itertools
import json
import time
from typing import Any, Awaitable, Callable, Dict, List, Optional, TypeVar

import httpx
from eth_abi.exceptions import DecodingError

from ..constants import (
    LOG_INCLUDE_REQUEST_CONTENT,
    LOG_INCLUDE_RESPONSE_CONTENT,
    LOG_MAX_PATH_LENGTH,
    REQUEST_TIMEOUT,
)
from ..exceptions import (
    AllEndpointsFailedError,
    InvalidInputError,
    LedgerRpcError,
    ResponseFormatError,
)
from ..logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

# A reply that arrived but could not be decoded into the expected shape
MALFORMED_REPLY_ERRORS = (
    json.JSONDecodeError,
    DecodingError,
    ResponseFormatError,
    InvalidInputError,
    ValueError,
    KeyError,
    IndexError,
    TypeError,
    AttributeError,
)

# Failures that make an endpoint fall through to the next one
ENDPOINT_ERRORS = (
    httpx.RequestError,
    httpx.HTTPStatusError,
    asyncio.TimeoutError,
    LedgerRpcError,
) + MALFORMED_REPLY_ERRORS


# ══════════════════════════════════════════════════════════════════════
#  CLIENT REGISTRY
# ══════════════════════════════════════════════════════════════════════

class ClientRegistry:
    """
    One shared ``httpx.AsyncClient`` per distinct endpoint URL.

    Handles are created on first use and never replaced afterwards, so they
    are safe to share across concurrent lookups.

    Args:
        timeout: Default per-request timeout in seconds
        transport: Optional httpx transport applied to every client
            (``httpx.MockTransport`` in tests)
    """

    def __init__(
        self,
        timeout: float = REQUEST_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.timeout = timeout
        self._transport = transport
        self._clients: Dict[str, httpx.AsyncClient] = {}
        self._closed = False

    @staticmethod
    def _key(url: str) -> str:
        return url.rstrip('/')

    def get(self, url: str) -> httpx.AsyncClient:
        if self._closed:
            raise RuntimeError("ClientRegistry is closed")
        key = self._key(url)
        client = self._clients.get(key)
        if client is None:
            kwargs: Dict[str, Any] = {"timeout": self.timeout}
            if self._transport is not None:
                kwargs["transport"] = self._transport
            client = httpx.AsyncClient(**kwargs)
            self._clients[key] = client
            logger.debug(f"Created HTTP client for {key}")
        return client

    def __contains__(self, url: str) -> bool:
        return self._key(url) in self._clients

    def __len__(self) -> int:
        return len(self._clients)

    async def aclose(self) -> None:
        """Close every cached client."""
        clients = list(self._clients.values())
        self._clients.clear()
        self._closed = True
        await asyncio.gather(*(client.aclose() for client in clients))

    async def __aenter__(self) -> "ClientRegistry":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()


# ══════════════════════════════════════════════════════════════════════
#  REQUEST WRAPPER
# ══════════════════════════════════════════════════════════════════════

def _truncate(url: str) -> str:
    if len(url) > LOG_MAX_PATH_LENGTH:
        return url[:LOG_MAX_PATH_LENGTH] + "...[TRUNCATED]"
    return url


async def request_json(
    client: httpx.AsyncClient,
    url: str,
    method: str = 'GET',
    **kwargs,
) -> Any:
    """
    Make one HTTP request and decode the JSON body.

    Transport, status and decoding errors are logged and re-raised so the
    caller can fall back to the next endpoint.
    """
    start_time = time.time()
    log_url = _truncate(url)

    body = ""
    if LOG_INCLUDE_REQUEST_CONTENT and kwargs.get('json') is not None:
        body = f"\n\nOutgoing Request:\n\"{json.dumps(kwargs['json'], indent=2)}\"\n"
    logger.debug(f"--> \"{method} {log_url} HTTP/1.1\"{body}")

    try:
        response = await client.request(method, url, **kwargs)
        process_time = time.time() - start_time
        response.raise_for_status()
        data = response.json()
        response_body = ""
        if LOG_INCLUDE_RESPONSE_CONTENT and response.text:
            response_body = f"\n\nIncoming Response:\n\"{response.text}\"\n"
        logger.debug(
            f"<-- \"{method} {log_url} HTTP/1.1\" {response.status_code} ({process_time:.3f}s){response_body}"
        )
        return data

    except httpx.RequestError:
        process_time = time.time() - start_time
        logger.warning(f"<-- \"{method} {log_url} HTTP/1.1\" NETWORK_ERROR ({process_time:.3f}s)")
        raise

    except (json.JSONDecodeError, httpx.HTTPStatusError) as e:
        process_time = time.time() - start_time
        response = getattr(e, 'response', None)
        status_code = response.status_code if response is not None else ''
        logger.warning(f"<-- \"{method} {log_url} HTTP/1.1\" {status_code} ERROR ({process_time:.3f}s): {e}")
        raise


_rpc_ids = itertools.count(1)


async def json_rpc(client: httpx.AsyncClient, url: str, method: str, params: List[Any]) -> Any:
    """
    Call a JSON-RPC 2.0 method and return its ``result``.

    Raises:
        LedgerRpcError: if the endpoint returned an ``error`` object
        ResponseFormatError: if the reply is not a JSON-RPC response
    """
    payload = {"jsonrpc": "2.0", "id": next(_rpc_ids), "method": method, "params": params}
    data = await request_json(client, url, 'POST', json=payload)
    if not isinstance(data, dict):
        raise ResponseFormatError(f"{method}: unexpected JSON-RPC reply")
    if data.get("error"):
        error = data["error"]
        message = error.get("message", str(error)) if isinstance(error, dict) else str(error)
        code = error.get("code") if isinstance(error, dict) else None
        raise LedgerRpcError(f"{method}: {message}", code)
    if "result" not in data:
        raise ResponseFormatError(f"{method}: reply without result")
    return data["result"]


# ══════════════════════════════════════════════════════════════════════
#  ENDPOINT FALLBACK
# ══════════════════════════════════════════════════════════════════════

class EndpointPool:
    """
    Ordered list of redundant endpoints for one ledger.

    ``call`` tries endpoint 1, then endpoint 2, ... and returns the first
    answer that arrives without error within the per-attempt timeout.
    """

    def __init__(
        self,
        ledger_key: str,
        endpoints: List[str],
        registry: ClientRegistry,
        timeout: Optional[float] = None,
    ):
        self.ledger_key = ledger_key
        self.endpoints = [e.rstrip('/') for e in endpoints if e]
        self.registry = registry
        self.timeout = timeout if timeout is not None else registry.timeout

    def __len__(self) -> int:
        return len(self.endpoints)

    async def call(
        self,
        operation: Callable[[httpx.AsyncClient, str], Awaitable[T]],
        label: str,
    ) -> T:
        """
        Run ``operation(client, base_url)`` against each endpoint in order.

        Raises:
            AllEndpointsFailedError: carrying one diagnostic per endpoint
        """
        errors: List[str] = []
        for url in self.endpoints:
            client = self.registry.get(url)
            try:
                return await asyncio.wait_for(operation(client, url), self.timeout)
            except ENDPOINT_ERRORS as e:
                reason = f"{type(e).__name__}: {e}" if str(e) else type(e).__name__
                errors.append(f"{url}: {reason}")
                logger.warning(f"[{self.ledger_key}] {label} failed on {url} ({reason}), trying next endpoint")
        if not self.endpoints:
            errors.append("no endpoints configured")
        raise AllEndpointsFailedError(
            f"[{self.ledger_key}] {label}: all {len(self.endpoints)} endpoints failed", errors,
        )
