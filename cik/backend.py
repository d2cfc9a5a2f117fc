"""
Cache Backend Facade

Maps the CiK client onto the generic cache backend verbs
(load / exists / save / remove / clear) plus the extended listing
and metadata verbs. The connection is opened on first use.
"""

import logging
import time
from typing import Any, Dict, Iterable, List, Optional

from .client import CiKClient
from .config.settings import settings
from .protocol.commands import ListMode
from .protocol.encoder import resolve_cleaning_mode
from .protocol.keys import BytesLike

logger = logging.getLogger(__name__)


class CacheBackend:
    """
    Generic cache backend on top of one CiK connection.

    Options (see configure()):
        host: Server host
        port: Server port
        connect_timeout: Seconds allowed for the TCP handshake
        io_timeout: Seconds a single socket call may block (None = forever)
        lifetime: Default TTL for save() when none is given (None = server default)

    A transport, framing or internal server error leaves the connection
    broken, and every later call raises CiKConnectionError. Call close()
    to drop it; the next call then opens a fresh connection.

    Usage:
        with CacheBackend({"port": 5555}) as cache:
            cache.save("value", "id", tags=["a"])
            cache.load("id")
    """

    OPTIONS = ("host", "port", "connect_timeout", "io_timeout", "lifetime")

    def __init__(self, options: Optional[Dict[str, Any]] = None):
        self._options: Dict[str, Any] = {
            "host": settings.HOST,
            "port": settings.PORT,
            "connect_timeout": settings.CONNECT_TIMEOUT,
            "io_timeout": settings.IO_TIMEOUT,
            "lifetime": None,
        }
        self._client: Optional[CiKClient] = None
        if options:
            self.configure(options)

    def configure(self, options: Dict[str, Any]) -> None:
        """
        Update backend options. An open connection is closed so the
        next call reconnects with the new settings.

        Raises:
            ValueError: On an unknown option name
        """
        unknown = sorted(set(options) - set(self.OPTIONS))
        if unknown:
            raise ValueError(f"unknown backend option(s): {', '.join(unknown)}")

        self._options.update(options)
        if self._client is not None:
            logger.debug("Backend reconfigured, dropping current connection")
            self.close()

    @property
    def options(self) -> Dict[str, Any]:
        return dict(self._options)

    @property
    def client(self) -> CiKClient:
        """
        The connected client, connecting on first access.

        A broken client is returned as is until close() drops it.
        """
        if self._client is None:
            client = CiKClient(
                host=self._options["host"],
                port=self._options["port"],
                connect_timeout=self._options["connect_timeout"],
                io_timeout=self._options["io_timeout"],
            )
            client.connect()
            self._client = client
        return self._client

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def load(self, id: BytesLike, skip_validity_check: bool = False) -> Optional[bytes]:
        """Return the cached value, or None on a miss."""
        return self.client.get(id, ignore_expiry=skip_validity_check)

    def exists(self, id: BytesLike) -> bool:
        """Check whether id is stored and not expired, without fetching it."""
        info = self.client.info(id)
        return info is not None and not info.is_expired(time.time())

    def save(
            self,
            value: BytesLike,
            id: BytesLike,
            tags: Iterable[BytesLike] = (),
            ttl: Optional[int] = None,
    ) -> bool:
        if ttl is None:
            ttl = self._options["lifetime"]
        return self.client.set(id, value, tags, ttl)

    def remove(self, id: BytesLike) -> bool:
        return self.client.delete(id)

    def clear(self, mode="all", tags: Iterable[BytesLike] = ()) -> bool:
        """Remove entries selected by a cleaning mode ('all', 'old', 'matchingTag', ...)."""
        mode = resolve_cleaning_mode(mode)
        return self.client.clear(mode, tags)

    # Extended verbs

    def get_ids(self) -> List[bytes]:
        return self.client.list(ListMode.ALL_KEYS)

    def get_tags(self) -> List[bytes]:
        return self.client.list(ListMode.ALL_TAGS)

    def get_ids_matching_tags(self, tags: Iterable[BytesLike]) -> List[bytes]:
        """Ids carrying every one of tags."""
        return self.client.list(ListMode.MATCHING_TAG, tags)

    def get_ids_not_matching_tags(self, tags: Iterable[BytesLike]) -> List[bytes]:
        """Ids carrying none of tags."""
        return self.client.list(ListMode.NOT_MATCHING_TAG, tags)

    def get_ids_matching_any_tags(self, tags: Iterable[BytesLike]) -> List[bytes]:
        """Ids carrying at least one of tags."""
        return self.client.list(ListMode.MATCHING_ANY_TAG, tags)

    def get_metadatas(self, id: BytesLike) -> Optional[Dict[str, Any]]:
        """Return {'expire', 'mtime', 'tags'} for id, or None if not stored."""
        info = self.client.info(id)
        if info is None:
            return None
        return {"expire": info.expires, "mtime": info.mtime, "tags": info.tags}
