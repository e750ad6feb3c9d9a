"""Key-value storage with per-key expiration.

All state that must survive between invocations (the running daily peak and
the monthly history) lives behind the :class:`KeyValueStore` protocol.
Values are JSON-serialisable objects; an expired key behaves exactly like a
missing one.

Two backends are provided:

* :class:`LocalKeyValueStore` keeps one JSON file per key under a local
  directory. Suitable for a single host running the cron jobs.
* :class:`S3KeyValueStore` keeps one object per key in an S3 bucket, for
  deployments where the poller and the reporter run on different machines.

Other backends (Redis, a cloud KV service, ...) only need to implement the
four protocol methods.
"""

from __future__ import annotations

import json
import logging
import os
import sys
import tempfile
import time
from pathlib import Path
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from types_boto3_s3 import S3Client

    from .config import OfficePeakConfig

logger = logging.getLogger(__name__)

_SUFFIX = ".json"


@runtime_checkable
class KeyValueStore(Protocol):
    """Protocol for the key-value operations used by officepeak.

    Keys are ``/``-separated strings such as ``"history/2025-08/2025-08-01"``.
    """

    def get(self, key: str) -> Any | None:
        """Return the value stored under *key*, or ``None`` if absent or expired."""
        ...

    def put(self, key: str, value: Any, *, expire_after_seconds: float | None = None) -> None:
        """Store *value* under *key*, replacing any previous value.

        Args:
            key: Key to write.
            value: JSON-serialisable value.
            expire_after_seconds: Lifetime of the entry; ``None`` keeps it
                forever.
        """
        ...

    def delete(self, key: str) -> None:
        """Remove *key*. Deleting a missing key is not an error."""
        ...

    def list(self, prefix: str = "") -> list[str]:
        """Return the live keys starting with *prefix*, sorted."""
        ...


def default_store_dir() -> Path:
    """Return the platform-appropriate directory for the local store."""
    if sys.platform == "win32":
        base = Path(os.environ.get("LOCALAPPDATA", Path.home() / "AppData" / "Local"))
        return base / "officepeak" / "store"
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / "officepeak" / "store"
    # Linux / other POSIX
    xdg = os.environ.get("XDG_STATE_HOME")
    base = Path(xdg) if xdg else Path.home() / ".local" / "state"
    return base / "officepeak" / "store"


def _check_key(key: str) -> str:
    parts = key.split("/")
    if not key or any(part in ("", ".", "..") for part in parts):
        msg = f"Invalid store key: {key!r}"
        raise ValueError(msg)
    return key


def _expires_at(expire_after_seconds: float | None) -> float | None:
    if expire_after_seconds is None:
        return None
    return time.time() + expire_after_seconds


class LocalKeyValueStore:
    """Key-value store backed by JSON files on the local file system.

    Each key maps to ``<root>/<key>.json`` containing the value and its
    expiry time. Writes go to a temporary file that is then renamed over the
    target, so readers never observe a partially written entry. Expired
    entries are removed when they are next read or listed.

    Args:
        root: Storage directory. Defaults to :func:`default_store_dir`.
    """

    __slots__ = ("_root",)

    def __init__(self, root: Path | None = None) -> None:
        self._root = root if root is not None else default_store_dir()

    @property
    def root(self) -> Path:
        """Directory holding the entries."""
        return self._root

    def _path(self, key: str) -> Path:
        *dirs, name = _check_key(key).split("/")
        return self._root.joinpath(*dirs, name + _SUFFIX)

    def _load(self, path: Path) -> dict[str, Any] | None:
        try:
            entry = json.loads(path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return None
        expires_at = entry.get("expires_at")
        if expires_at is not None and expires_at <= time.time():
            path.unlink(missing_ok=True)
            return None
        return entry

    def get(self, key: str) -> Any | None:
        entry = self._load(self._path(key))
        return None if entry is None else entry["value"]

    def put(self, key: str, value: Any, *, expire_after_seconds: float | None = None) -> None:
        path = self._path(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        payload = json.dumps({"value": value, "expires_at": _expires_at(expire_after_seconds)})

        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=".tmp_", suffix=_SUFFIX)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(payload)
            os.replace(tmp_name, path)
        except OSError:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def delete(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)

    def list(self, prefix: str = "") -> list[str]:
        if not self._root.is_dir():
            return []
        keys: list[str] = []
        for path in self._root.rglob(f"*{_SUFFIX}"):
            if path.name.startswith(".tmp_"):
                continue
            key = path.relative_to(self._root).as_posix()[: -len(_SUFFIX)]
            if key.startswith(prefix) and self._load(path) is not None:
                keys.append(key)
        return sorted(keys)


class S3KeyValueStore:
    """Key-value store backed by Amazon S3.

    Requires the ``boto3`` package (install via ``pip install officepeak[s3]``).

    Each key is one object holding the JSON value; the expiry time travels
    in the object's ``expires-at`` metadata and is enforced on read. Pair
    the bucket with a lifecycle rule if expired objects should also be
    physically removed.

    Args:
        bucket: S3 bucket name.
        prefix: Optional key prefix prepended to all keys.
        **boto_kwargs: Additional keyword arguments passed to
            ``boto3.client("s3", ...)`` (``region_name``, ``endpoint_url``
            for S3-compatible services, explicit credentials).
    """

    _EXPIRY_META = "expires-at"

    def __init__(self, bucket: str, prefix: str = "", **boto_kwargs: Any) -> None:
        try:
            import boto3  # type: ignore[import-not-found]
        except ImportError:
            msg = "boto3 is required for S3KeyValueStore. Install it with: pip install officepeak[s3]"
            raise ImportError(msg) from None
        _boto3: Any = boto3
        self._bucket = bucket
        self._prefix = prefix.strip("/")
        self._client: S3Client = _boto3.client("s3", **boto_kwargs)

    def _key(self, key: str) -> str:
        raw = _check_key(key)
        if self._prefix:
            return f"{self._prefix}/{raw}"
        return raw

    def _logical(self, s3_key: str) -> str:
        if self._prefix:
            return s3_key[len(self._prefix) + 1 :]
        return s3_key

    @classmethod
    def _expired(cls, metadata: dict[str, str]) -> bool:
        raw = metadata.get(cls._EXPIRY_META)
        return raw is not None and float(raw) <= time.time()

    def get(self, key: str) -> Any | None:
        try:
            resp = self._client.get_object(Bucket=self._bucket, Key=self._key(key))
        except self._client.exceptions.NoSuchKey:
            return None
        if self._expired(resp.get("Metadata", {})):
            return None
        return json.loads(resp["Body"].read())

    def put(self, key: str, value: Any, *, expire_after_seconds: float | None = None) -> None:
        metadata: dict[str, str] = {}
        expires_at = _expires_at(expire_after_seconds)
        if expires_at is not None:
            metadata[self._EXPIRY_META] = repr(expires_at)
        self._client.put_object(
            Bucket=self._bucket,
            Key=self._key(key),
            Body=json.dumps(value).encode("utf-8"),
            ContentType="application/json",
            Metadata=metadata,
        )

    def delete(self, key: str) -> None:
        self._client.delete_object(Bucket=self._bucket, Key=self._key(key))

    def list(self, prefix: str = "") -> list[str]:
        s3_prefix = f"{self._prefix}/{prefix}" if self._prefix else prefix
        paginator = self._client.get_paginator("list_objects_v2")
        keys: list[str] = []
        for page in paginator.paginate(Bucket=self._bucket, Prefix=s3_prefix):
            for obj in page.get("Contents", []):
                s3_key = obj.get("Key", "")
                if not s3_key:
                    continue
                head = self._client.head_object(Bucket=self._bucket, Key=s3_key)
                if not self._expired(head.get("Metadata", {})):
                    keys.append(self._logical(s3_key))
        return sorted(keys)


def open_store(config: OfficePeakConfig) -> KeyValueStore:
    """Open the store selected by *config*.

    An S3 bucket takes precedence; otherwise a local store is opened in
    ``config.store_dir`` (or the platform default).
    """
    if config.s3_bucket:
        logger.debug("Using S3 store s3://%s/%s", config.s3_bucket, config.s3_prefix)
        return S3KeyValueStore(config.s3_bucket, prefix=config.s3_prefix)
    store = LocalKeyValueStore(config.store_dir)
    logger.debug("Using local store %s", store.root)
    return store
