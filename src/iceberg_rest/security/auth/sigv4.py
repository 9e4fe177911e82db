"""AWS Signature Version 4 signing for catalog requests.

Signs exactly three headers (host, x-amz-content-sha256, x-amz-date) over
the real outbound method, URL and body. Only what the catalog proxy needs:
one region/service per session, no chunked payloads, no presigned URLs,
no session tokens.

Signing steps:
1. Timestamps from current UTC (amz_date YYYYMMDDTHHMMSSZ, date_stamp YYYYMMDD)
2. Canonical URI (path segments encoded again unless the service is s3)
   and canonical query string (RFC 3986 encoded, sorted)
3. Payload hash (hex SHA-256 of the body; empty body is hashed too)
4. Canonical request, then its hex SHA-256
5. String to sign with the credential scope
6. Derived signing key (date -> region -> service -> "aws4_request")
7. Authorization header
"""

from __future__ import annotations

__all__ = [
    "ALGORITHM",
    "SIGNED_HEADERS",
    "SignedRequest",
    "build_canonical_query",
    "build_canonical_request",
    "build_string_to_sign",
    "derive_signing_key",
    "sign_request",
]

import hashlib
import hmac
from dataclasses import dataclass
from datetime import datetime, timezone
from urllib.parse import quote, unquote, urlsplit

ALGORITHM = "AWS4-HMAC-SHA256"
SIGNED_HEADERS = "host;x-amz-content-sha256;x-amz-date"

# RFC 3986 unreserved characters besides alphanumerics
_UNRESERVED = "-_.~"


@dataclass(frozen=True)
class SignedRequest:
    """Result of signing one request.

    Attributes:
        authorization: Value of the Authorization header.
        host: Value signed as the host header.
        amz_date: Value of x-amz-date.
        payload_hash: Value of x-amz-content-sha256.
    """

    authorization: str
    host: str
    amz_date: str
    payload_hash: str


def _hmac_sha256(key: bytes, msg: str) -> bytes:
    return hmac.new(key, msg.encode("utf-8"), hashlib.sha256).digest()


def _sha256_hex(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def build_canonical_query(query: str) -> str:
    """Normalize a raw query string for signing.

    Each pair is percent-decoded, then re-encoded with only the RFC 3986
    unreserved set left as-is, sorted by key then value and joined with '&'.
    A literal '+' is data, not a space, so it is signed as %2B.

    Args:
        query: Raw query string without the leading '?'.

    Returns:
        Canonical query string ('' when there is no query).
    """
    if not query:
        return ""
    pairs = []
    for segment in query.split("&"):
        if not segment:
            continue
        key, _, value = segment.partition("=")
        pairs.append((unquote(key), unquote(value)))
    encoded = sorted((quote(k, safe=_UNRESERVED), quote(v, safe=_UNRESERVED)) for k, v in pairs)
    return "&".join(f"{k}={v}" for k, v in encoded)


def build_canonical_request(
    method: str,
    canonical_uri: str,
    canonical_query: str,
    host: str,
    payload_hash: str,
    amz_date: str,
) -> str:
    """Assemble the canonical request string.

    Each canonical header line is newline-terminated, so the request contains
    a blank line between the header block and the signed header list.
    """
    canonical_headers = f"host:{host}\n" f"x-amz-content-sha256:{payload_hash}\n" f"x-amz-date:{amz_date}\n"
    return "\n".join(
        [
            method.upper(),
            canonical_uri,
            canonical_query,
            canonical_headers,
            SIGNED_HEADERS,
            payload_hash,
        ]
    )


def build_string_to_sign(amz_date: str, credential_scope: str, canonical_request: str) -> str:
    return "\n".join(
        [
            ALGORITHM,
            amz_date,
            credential_scope,
            _sha256_hex(canonical_request.encode("utf-8")),
        ]
    )


def derive_signing_key(secret_key: str, date_stamp: str, region: str, service: str) -> bytes:
    """Derive the scoped signing key.

    HMAC chain: "AWS4" + secret -> date -> region -> service -> "aws4_request".
    """
    k_date = _hmac_sha256(f"AWS4{secret_key}".encode("utf-8"), date_stamp)
    k_region = _hmac_sha256(k_date, region)
    k_service = _hmac_sha256(k_region, service)
    return _hmac_sha256(k_service, "aws4_request")


def sign_request(
    method: str,
    url: str,
    body: bytes | None,
    *,
    access_key: str,
    secret_key: str,
    region: str,
    service: str,
    now: datetime | None = None,
) -> SignedRequest:
    """Sign a request with AWS SigV4.

    Args:
        method: HTTP method of the outbound request.
        url: Fully qualified target URL.
        body: Outbound body bytes (None for no body).
        access_key: AWS access key id.
        secret_key: AWS secret access key.
        region: Signing region.
        service: Signing service name.
        now: Signing time (defaults to current UTC).

    Returns:
        SignedRequest with the header values to send.
    """
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is not None:
        now = now.astimezone(timezone.utc)
    amz_date = now.strftime("%Y%m%dT%H%M%SZ")
    date_stamp = now.strftime("%Y%m%d")

    parts = urlsplit(url)
    host = parts.netloc
    # Services other than s3 sign each path segment encoded a second time.
    # The path sent upstream is unchanged.
    canonical_uri = parts.path or "/"
    if service != "s3":
        canonical_uri = quote(canonical_uri, safe="/~")
    canonical_query = build_canonical_query(parts.query)
    payload_hash = _sha256_hex(body or b"")

    canonical_request = build_canonical_request(
        method, canonical_uri, canonical_query, host, payload_hash, amz_date
    )
    credential_scope = f"{date_stamp}/{region}/{service}/aws4_request"
    string_to_sign = build_string_to_sign(amz_date, credential_scope, canonical_request)

    signing_key = derive_signing_key(secret_key, date_stamp, region, service)
    signature = hmac.new(signing_key, string_to_sign.encode("utf-8"), hashlib.sha256).hexdigest()

    authorization = (
        f"{ALGORITHM} Credential={access_key}/{credential_scope}, "
        f"SignedHeaders={SIGNED_HEADERS}, Signature={signature}"
    )
    return SignedRequest(
        authorization=authorization,
        host=host,
        amz_date=amz_date,
        payload_hash=payload_hash,
    )
