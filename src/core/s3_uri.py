"""Export folder URI parsing.

Table exports land under ``s3://<bucket>/<prefix>/AWSDynamoDB/<export-id>/data``.
This module splits such URIs into the bucket and key prefix used for listing.
"""

from __future__ import annotations

from dataclasses import dataclass

from core.errors import MigrateIngestError

S3_SCHEME = "s3://"


@dataclass(frozen=True)
class S3Location:
    """Bucket and key prefix of an export data folder."""

    bucket: str
    prefix: str

    @property
    def uri(self) -> str:
        """Return the location rendered back as an ``s3://`` URI."""
        return f"{S3_SCHEME}{self.bucket}/{self.prefix}"


def is_s3_uri(uri: str) -> bool:
    """Return whether a source URI points at object storage."""
    return uri.startswith(S3_SCHEME)


def parse_s3_uri(uri: str) -> S3Location:
    """Parse an export folder URI.

    A trailing slash is kept so listing does not match sibling folders
    that share the prefix.

    Args:
        uri: URI in format ``s3://bucket/prefix``.

    Returns:
        Parsed bucket and prefix pair.

    Raises:
        MigrateIngestError: If the URI lacks the scheme, a bucket, or a prefix.
    """
    if not is_s3_uri(uri):
        raise MigrateIngestError(f"Invalid S3 URI '{uri}': expected the {S3_SCHEME} scheme.")
    bucket, _, prefix = uri[len(S3_SCHEME):].partition("/")
    if not bucket or not prefix.strip("/"):
        raise MigrateIngestError(
            f"Invalid S3 URI '{uri}': expected s3://bucket/prefix. "
            "Provide both bucket and prefix of the export data folder."
        )
    return S3Location(bucket=bucket, prefix=prefix)
