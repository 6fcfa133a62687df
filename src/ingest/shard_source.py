"""Export shard listing, retrieval, and line streaming.

This module enumerates compressed export shards under an S3 prefix or a
local directory and streams each shard as decompressed JSON lines.
"""

from __future__ import annotations

import gzip
import zlib
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, BinaryIO, Iterator, Protocol

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from core.config import MigrateConfig
from core.constants import SHARD_SUFFIX
from core.errors import MigrateIngestError
from core.s3_uri import S3Location, is_s3_uri, parse_s3_uri


@dataclass(frozen=True)
class ShardObject:
    """An opened shard ready to stream.

    Attributes:
        key: Shard identifier (object key or file path).
        body: Compressed byte stream.
        last_modified: Last-modified time of the shard.
    """

    key: str
    body: BinaryIO
    last_modified: datetime


class ShardSource(Protocol):
    """Store of export shards."""

    def list_shards(self) -> list[str]:
        ...

    def open_shard(self, key: str) -> ShardObject | None:
        ...


class S3ShardSource:
    """Shard source backed by an S3 prefix."""

    def __init__(self, location: S3Location, s3_client: Any) -> None:
        self._location = location
        self._s3_client = s3_client

    def list_shards(self) -> list[str]:
        """List shard keys under the prefix in key order.

        Raises:
            MigrateIngestError: If listing fails.
        """
        paginator = self._s3_client.get_paginator("list_objects_v2")
        keys: list[str] = []
        try:
            for page in paginator.paginate(Bucket=self._location.bucket, Prefix=self._location.prefix):
                for obj in page.get("Contents", []):
                    if obj["Key"].endswith(SHARD_SUFFIX):
                        keys.append(obj["Key"])
        except (BotoCoreError, ClientError) as error:
            raise MigrateIngestError(
                f"Failed to list shards under {self._location.uri}: "
                f"{error}. Check the export URI and AWS credentials."
            ) from error
        return sorted(keys)

    def open_shard(self, key: str) -> ShardObject | None:
        """Open one shard object.

        Returns:
            The opened shard, or None when the response lacks a body or a
            last-modified timestamp.

        Raises:
            MigrateIngestError: If retrieval fails.
        """
        try:
            response = self._s3_client.get_object(Bucket=self._location.bucket, Key=key)
        except (BotoCoreError, ClientError) as error:
            raise MigrateIngestError(
                f"Failed to retrieve s3://{self._location.bucket}/{key}: {error}."
            ) from error
        body = response.get("Body")
        last_modified = response.get("LastModified")
        if body is None or last_modified is None:
            return None
        return ShardObject(key=key, body=body, last_modified=last_modified)


class LocalShardSource:
    """Shard source backed by a local export directory."""

    def __init__(self, directory: Path) -> None:
        self._directory = directory

    def list_shards(self) -> list[str]:
        """List shard files under the directory in path order.

        Raises:
            MigrateIngestError: If the directory does not exist.
        """
        if not self._directory.is_dir():
            raise MigrateIngestError(
                f"Failed to list shards at {self._directory}: directory does not exist. "
                "Provide the export data folder."
            )
        return sorted(
            str(path) for path in self._directory.rglob(f"*{SHARD_SUFFIX}") if path.is_file()
        )

    def open_shard(self, key: str) -> ShardObject | None:
        """Open one shard file; its mtime is the last-modified time."""
        path = Path(key)
        try:
            last_modified = datetime.fromtimestamp(path.stat().st_mtime, tz=timezone.utc)
            body = path.open("rb")
        except OSError as error:
            raise MigrateIngestError(f"Failed to open shard {path}: {error}.") from error
        return ShardObject(key=key, body=body, last_modified=last_modified)


def build_shard_source(source_uri: str, config: MigrateConfig) -> ShardSource:
    """Build the shard source for an export URI.

    Args:
        source_uri: ``s3://bucket/prefix`` or a local directory.
        config: Runtime configuration for S3 session defaults.

    Returns:
        Shard source for the URI.
    """
    if is_s3_uri(source_uri):
        return S3ShardSource(parse_s3_uri(source_uri), create_s3_client(config))
    return LocalShardSource(Path(source_uri).expanduser().resolve())


def create_s3_client(config: MigrateConfig) -> Any:
    """Create a boto3 S3 client.

    Args:
        config: Runtime config containing optional profile/region.

    Returns:
        Boto3 S3 client.
    """
    session_kwargs: dict[str, str] = {}
    if config.s3_profile:
        session_kwargs["profile_name"] = config.s3_profile
    if config.s3_region:
        session_kwargs["region_name"] = config.s3_region
    session = boto3.session.Session(**session_kwargs)
    return session.client("s3")


def iter_shard_lines(shard: ShardObject) -> Iterator[bytes]:
    """Stream a gzip shard as individual lines without loading it whole.

    Args:
        shard: Opened shard.

    Yields:
        Lines without their trailing newline; blank lines are skipped.

    Raises:
        MigrateIngestError: If the shard is not valid gzip data.
    """
    try:
        with gzip.GzipFile(fileobj=shard.body, mode="rb") as decompressed:
            for line in decompressed:
                stripped = line.rstrip(b"\r\n")
                if stripped:
                    yield stripped
    except (OSError, EOFError, zlib.error) as error:
        raise MigrateIngestError(
            f"Failed to decompress shard {shard.key}: {error}. "
            "The export shard is corrupt or not gzip-compressed."
        ) from error
    finally:
        shard.body.close()
