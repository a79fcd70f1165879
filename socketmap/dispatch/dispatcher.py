"""
Request Dispatcher Module

Routes a '<table> <key>' request to the matching lookup table, consulting
the shared LookupCache before the directory provider.

Tables:
    user-exists      -> OK <key>          | NOTFOUND
    virtual-domains  -> OK                | NOTFOUND
    virtual-aliases  -> OK <destination>  | NOTFOUND

Unknown tables answer NOTFOUND. Directory failures answer TEMP and are
not cached.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, Dict, List

from ..cache.store import CachedResult, LookupCache
from ..config.settings import settings
from ..directory.provider import DirectoryError, DirectoryProvider
from ..protocol.commands import RequestFormatError, Response
from ..protocol.parser import ProtocolParser

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LookupTable:
    """
    One socketmap table.

    Attributes:
        name: Table name as sent by the MTA
        namespace: Cache namespace for the table's keys
        ttl: Seconds a directory answer stays cached
        resolve: Directory call producing a CachedResult for a key
        render: Builds the reply for a key whose result exists
    """
    name: str
    namespace: str
    ttl: float
    resolve: Callable[[DirectoryProvider, str], CachedResult]
    render: Callable[[str, CachedResult], Response]


def _resolve_user(provider: DirectoryProvider, email: str) -> CachedResult:
    return CachedResult.present() if provider.user_exists(email) else CachedResult.absent()


def _resolve_domain(provider: DirectoryProvider, domain: str) -> CachedResult:
    return CachedResult.present() if provider.domain_exists(domain) else CachedResult.absent()


def _resolve_alias(provider: DirectoryProvider, address: str) -> CachedResult:
    destination = provider.resolve_alias(address)
    if not destination:
        return CachedResult.absent()
    return CachedResult.present(destination)


def default_tables() -> List[LookupTable]:
    """Build the standard tables with TTLs from settings."""
    return [
        LookupTable(
            name="user-exists",
            namespace="user",
            ttl=settings.USER_EXISTS_TTL,
            resolve=_resolve_user,
            # Echoes the lookup key as the value
            render=lambda key, result: Response.found(key),
        ),
        LookupTable(
            name="virtual-domains",
            namespace="domain",
            ttl=settings.VIRTUAL_DOMAINS_TTL,
            resolve=_resolve_domain,
            render=lambda key, result: Response.found(),
        ),
        LookupTable(
            name="virtual-aliases",
            namespace="alias",
            ttl=settings.VIRTUAL_ALIASES_TTL,
            resolve=_resolve_alias,
            render=lambda key, result: Response.found(result.destination),
        ),
    ]


class RequestDispatcher:
    """
    Answers decoded socketmap requests.

    Usage:
        dispatcher = RequestDispatcher(StaticDirectoryProvider(), LookupCache())
        response = await dispatcher.dispatch("user-exists test@example.com")

    Attributes:
        provider: The directory backend
        cache: The LookupCache shared by all connections
        parser: The ProtocolParser for request text
    """

    def __init__(
            self,
            provider: DirectoryProvider,
            cache: LookupCache = None,
            tables: List[LookupTable] = None,
    ):
        self.provider = provider
        self.cache = cache if cache is not None else LookupCache()
        self.parser = ProtocolParser()
        self._tables: Dict[str, LookupTable] = {
            table.name: table for table in (tables if tables is not None else default_tables())
        }

    @property
    def tables(self) -> List[str]:
        """Names of the registered tables."""
        return list(self._tables)

    async def dispatch(self, raw: str) -> Response:
        """
        Answer one request.

        Args:
            raw: Decoded request text, e.g. "virtual-domains example.com"

        Returns:
            The Response to send back; never raises for bad input or
            provider failures of any kind.
        """
        try:
            request = self.parser.parse_request(raw)
        except RequestFormatError as exc:
            logger.debug(f"Rejected request {raw!r}: {exc}")
            return Response.perm("invalid request format")

        table = self._tables.get(request.table)
        if table is None:
            logger.debug(f"Unknown table {request.table!r} in {request.raw!r}")
            return Response.not_found()

        try:
            result = await self._lookup(table, request.key)
        except DirectoryError as exc:
            logger.warning(f"Directory lookup failed for {table.name} {request.key}: {exc}")
            return Response.temp("directory lookup failed")
        except Exception as exc:  # Backend bugs or transport errors still get a reply
            logger.exception(f"Directory provider error for {table.name} {request.key}: {exc}")
            return Response.temp("directory lookup failed")

        response = table.render(request.key, result) if result.exists else Response.not_found()
        logger.debug(f"{table.name} {request.key} -> {response.status.value}")
        return response

    async def _lookup(self, table: LookupTable, key: str) -> CachedResult:
        """Return the cached result for key, fetching and caching it on a miss."""
        entry = self.cache.get(table.namespace, key)
        if entry is not None:
            logger.debug(f"Cache hit: {table.namespace}:{key}")
            return entry.result

        # Providers may block; keep them off the event loop
        result = await asyncio.to_thread(table.resolve, self.provider, key)
        self.cache.put(table.namespace, key, result, table.ttl)
        return result
