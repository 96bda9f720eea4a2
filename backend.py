import json
import threading
from abc import ABC, abstractmethod
from typing import Any, Dict, Iterator, Optional

import redis

from constants import REDIS_HOST, REDIS_PORT, REDIS_PASSWORD, REDIS_SOCKET_TIMEOUT, STORAGE_BACKEND
from exceptions import StorageError
from logging_config import get_logger

logger = get_logger(__name__)


class StorageBackend(ABC):
    """
    Key-value store holding one JSON room record per key.

    `expected_version` turns `put`/`delete` into a compare-and-swap:
    - None: unconditional write
    - 0: the key must be absent
    - n > 0: the stored record's `version` must equal n
    A failed comparison returns False and leaves the store untouched.
    Backend failures raise StorageError, they are never reported as success.
    """

    supports_native_ttl = False

    @abstractmethod
    def get(self, key: str) -> Optional[Dict[str, Any]]:
        ...

    @abstractmethod
    def put(self, key: str, record: Dict[str, Any], ttl_seconds: Optional[int] = None,
            expected_version: Optional[int] = None) -> bool:
        ...

    @abstractmethod
    def delete(self, key: str, expected_version: Optional[int] = None) -> bool:
        ...

    @abstractmethod
    def list_keys(self, prefix: str) -> Iterator[str]:
        ...


def _record_version(record: Optional[Dict[str, Any]]) -> int:
    if record is None:
        return 0
    return record.get("version", 0)


class MemoryBackend(StorageBackend):
    """
    Process-local store for tests and single-instance deployments.

    Durability limitation: everything lives in this process, so all rooms are
    lost on restart. There is no native expiry; the lifecycle sweep removes
    stale rooms instead.
    """

    def __init__(self):
        # Records are kept serialized so callers never share mutable state with the store
        self._records: Dict[str, str] = {}
        self._lock = threading.Lock()
        logger.info("Initializing MemoryBackend (room state is lost on restart)")

    def _load(self, key: str) -> Optional[Dict[str, Any]]:
        raw = self._records.get(key)
        return json.loads(raw) if raw is not None else None

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            record = self._load(key)
        logger.debug(f"Memory get {key}: {'hit' if record is not None else 'miss'}")
        return record

    def put(self, key: str, record: Dict[str, Any], ttl_seconds: Optional[int] = None,
            expected_version: Optional[int] = None) -> bool:
        payload = json.dumps(record)
        with self._lock:
            if expected_version is not None and _record_version(self._load(key)) != expected_version:
                logger.debug(f"Memory put {key} rejected: version is no longer {expected_version}")
                return False
            self._records[key] = payload
        logger.debug(f"Memory put {key} (ttl ignored: {ttl_seconds})")
        return True

    def delete(self, key: str, expected_version: Optional[int] = None) -> bool:
        with self._lock:
            if expected_version is not None and _record_version(self._load(key)) != expected_version:
                logger.debug(f"Memory delete {key} rejected: version is no longer {expected_version}")
                return False
            existed = self._records.pop(key, None) is not None
        logger.debug(f"Memory delete {key}: existed={existed}")
        return True

    def list_keys(self, prefix: str) -> Iterator[str]:
        with self._lock:
            keys = [k for k in self._records if k.startswith(prefix)]
        return iter(keys)


class RedisBackend(StorageBackend):
    """Redis store: JSON string per key, native TTL via SET EX, CAS via WATCH/MULTI/EXEC."""

    supports_native_ttl = True

    def __init__(self, client: Optional[redis.Redis] = None):
        if client is None:
            logger.info(f"Initializing RedisBackend with connection to {REDIS_HOST}:{REDIS_PORT}")
            client = redis.Redis(
                host=REDIS_HOST,
                port=REDIS_PORT,
                password=REDIS_PASSWORD,
                decode_responses=True,
                socket_timeout=REDIS_SOCKET_TIMEOUT,
                socket_connect_timeout=REDIS_SOCKET_TIMEOUT,
            )
        self.redis_client = client

    @staticmethod
    def _decode(key: str, raw: Optional[str]) -> Optional[Dict[str, Any]]:
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except (json.JSONDecodeError, TypeError) as e:
            raise StorageError(f"Corrupt record at {key}") from e

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        try:
            raw = self.redis_client.get(key)
        except redis.RedisError as e:
            logger.error(f"Redis get failed for {key}: {e}", exc_info=True)
            raise StorageError(f"Failed to read {key}") from e
        logger.debug(f"Redis get {key}: {'hit' if raw is not None else 'miss'}")
        return self._decode(key, raw)

    def put(self, key: str, record: Dict[str, Any], ttl_seconds: Optional[int] = None,
            expected_version: Optional[int] = None) -> bool:
        payload = json.dumps(record)
        try:
            if expected_version is None:
                self.redis_client.set(key, payload, ex=ttl_seconds)
                logger.debug(f"Redis put {key} with TTL {ttl_seconds}")
                return True
            with self.redis_client.pipeline() as pipe:
                try:
                    pipe.watch(key)
                    if _record_version(self._decode(key, pipe.get(key))) != expected_version:
                        pipe.unwatch()
                        logger.debug(f"Redis put {key} rejected: version is no longer {expected_version}")
                        return False
                    pipe.multi()
                    pipe.set(key, payload, ex=ttl_seconds)
                    pipe.execute()
                except redis.WatchError:
                    logger.debug(f"Redis put {key} lost a race on WATCH")
                    return False
            logger.debug(f"Redis put {key} with TTL {ttl_seconds} (version {expected_version} -> {record.get('version')})")
            return True
        except redis.RedisError as e:
            logger.error(f"Redis put failed for {key}: {e}", exc_info=True)
            raise StorageError(f"Failed to write {key}") from e

    def delete(self, key: str, expected_version: Optional[int] = None) -> bool:
        try:
            if expected_version is None:
                deleted = self.redis_client.delete(key)
                logger.debug(f"Redis delete {key}: {deleted}")
                return True
            with self.redis_client.pipeline() as pipe:
                try:
                    pipe.watch(key)
                    if _record_version(self._decode(key, pipe.get(key))) != expected_version:
                        pipe.unwatch()
                        logger.debug(f"Redis delete {key} rejected: version is no longer {expected_version}")
                        return False
                    pipe.multi()
                    pipe.delete(key)
                    pipe.execute()
                except redis.WatchError:
                    logger.debug(f"Redis delete {key} lost a race on WATCH")
                    return False
            logger.debug(f"Redis delete {key} at version {expected_version}")
            return True
        except redis.RedisError as e:
            logger.error(f"Redis delete failed for {key}: {e}", exc_info=True)
            raise StorageError(f"Failed to delete {key}") from e

    def list_keys(self, prefix: str) -> Iterator[str]:
        try:
            for key in self.redis_client.scan_iter(match=prefix + "*"):
                yield key
        except redis.RedisError as e:
            logger.error(f"Redis scan failed for prefix {prefix}: {e}", exc_info=True)
            raise StorageError(f"Failed to list keys under {prefix}") from e


def get_storage_backend(kind: str = STORAGE_BACKEND) -> StorageBackend:
    if kind == "memory":
        return MemoryBackend()
    if kind == "redis":
        return RedisBackend()
    raise ValueError(f"Unknown storage backend: {kind}")
