import base64
import binascii
import hashlib
import hmac
import re
import secrets
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Mapping, Optional, Tuple
from urllib.parse import urlencode, urlsplit, urlunsplit

import bcrypt

ID_PATTERN = re.compile(r"^[a-fA-F0-9]{32}$")
BASIC_PATTERN = re.compile(r"^Basic ([A-Za-z0-9+/]+={0,2})$", re.IGNORECASE)
BEARER_PATTERN = re.compile(r"^Bearer ([a-fA-F0-9]{32})$", re.IGNORECASE)


def new_id() -> str:
    """Generate a new entity identifier (16 random bytes as 32 hex chars)."""
    return secrets.token_hex(16)


def parse_id(value: Optional[str]) -> Optional[str]:
    """Normalize an identifier, or return None if it is not a valid id."""
    if not value or not isinstance(value, str):
        return None
    value = value.strip()
    if not ID_PATTERN.match(value):
        return None
    return value.lower()


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def secret_matches(provided: Optional[str], stored: Optional[str]) -> bool:
    """Compare a presented client secret against the stored one in constant time.

    Two storage formats are supported:
      1) Plaintext/opaque value.
      2) ``sha256:<hex>`` digest of the secret.

    An absent secret only matches an absent secret (public clients).
    """
    if not stored:
        return not provided
    if not provided:
        return False

    if stored.lower().startswith("sha256:"):
        stored_hex = stored.split(":", 1)[1].lower()
        provided_hex = hashlib.sha256(provided.encode("utf-8")).hexdigest()
        return hmac.compare_digest(provided_hex, stored_hex)

    return hmac.compare_digest(provided.encode("utf-8"), stored.encode("utf-8"))


def hash_password(password: str) -> str:
    """Hash a user password with bcrypt."""
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, hashed: Optional[str]) -> bool:
    if not password or not hashed:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        # Stored value is not a bcrypt hash
        return False


def parse_basic_auth(auth_header: Optional[str]) -> Optional[Tuple[str, str]]:
    """Parse HTTP Basic client authentication.

    Args:
        auth_header (Optional[str]): Authorization header value.

    Returns:
        Optional[Tuple[str, str]]: (client_id, client_secret), or None when the
        header is absent or uses another scheme.

    Raises:
        ValueError: The header claims the Basic scheme but cannot be decoded
            into an ``id:secret`` pair.
    """
    if not auth_header or not auth_header[:6].lower() == "basic ":
        return None

    match = BASIC_PATTERN.match(auth_header.strip())
    if not match:
        raise ValueError("Malformed Basic authorization header")

    try:
        raw = base64.b64decode(match.group(1), validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError) as e:
        raise ValueError("Basic authorization header is not valid base64") from e

    if ":" not in raw:
        raise ValueError("Basic authorization header has no secret separator")

    client_id, client_secret = raw.split(":", 1)
    return client_id, client_secret


def basic_auth_header(client_id: str, client_secret: str) -> str:
    raw = f"{client_id}:{client_secret}".encode("utf-8")
    return "Basic " + base64.b64encode(raw).decode("ascii")


def parse_bearer(auth_header: Optional[str]) -> Optional[str]:
    """Return the token id from a ``Bearer <id>`` header, if it has that shape."""
    if not auth_header:
        return None
    match = BEARER_PATTERN.match(auth_header.strip())
    return match.group(1).lower() if match else None


def append_parameters(uri: str, params: Mapping[str, str], fragment: bool = False) -> str:
    """Add parameters to a URI's query string, or to its fragment."""
    parts = urlsplit(uri)
    encoded = urlencode(list(params.items()))
    if fragment:
        new_fragment = f"{parts.fragment}&{encoded}" if parts.fragment else encoded
        return urlunsplit((parts.scheme, parts.netloc, parts.path, parts.query, new_fragment))
    new_query = f"{parts.query}&{encoded}" if parts.query else encoded
    return urlunsplit((parts.scheme, parts.netloc, parts.path, new_query, parts.fragment))


def strip_query_and_fragment(uri: str) -> str:
    parts = urlsplit(uri)
    return urlunsplit((parts.scheme, parts.netloc, parts.path, "", ""))


def split_scope(scope: Optional[str]) -> List[str]:
    """Split a space-delimited scope string into names, dropping blanks."""
    if not scope:
        return []
    return [s for s in scope.split(" ") if s.strip()]


def join_scope(names: Iterable[str]) -> Optional[str]:
    """Space-join scope names; None when there are none."""
    names = sorted(names)
    return " ".join(names) if names else None


def first(values: Optional[Dict[str, List[str]]], key: str) -> Optional[str]:
    items = (values or {}).get(key) or []
    return items[0] if items else None
