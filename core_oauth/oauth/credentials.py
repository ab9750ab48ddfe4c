from dataclasses import dataclass
from enum import Enum
from typing import Optional

from loguru import logger as log

from ..constants import CLIENT_ID, CLIENT_SECRET
from ..exceptions import InvalidRequestException
from ..request import OAuthRequest
from ..tools import parse_basic_auth, parse_id


class CredentialSource(str, Enum):
    NONE = "none"
    HEADER = "header"
    BODY = "body"
    QUERY = "query"


@dataclass(frozen=True)
class Credentials:
    """Client credentials found on a request.

    Three outcomes are possible: no credentials at all (anonymous), one
    consistent set of credentials, or an ``error`` when the request carries
    conflicting or malformed credentials.
    """

    login: Optional[str] = None
    password: Optional[str] = None
    source: CredentialSource = CredentialSource.NONE
    error: Optional[str] = None

    @property
    def is_valid(self) -> bool:
        return self.error is None and self.login is not None

    @property
    def is_error(self) -> bool:
        return self.error is not None

    @classmethod
    def failed(cls, reason: str) -> "Credentials":
        log.debug("Rejected client credentials", details={"reason": reason})
        return cls(error=reason)


def extract_credentials(request: OAuthRequest) -> Credentials:
    """Extract client credentials from exactly one place on the request.

    Credentials may come from an HTTP Basic header, a form encoded POST body,
    or (client_id only) a GET query string. A request side ``client_id`` that
    repeats the header's id without a secret is the same credential restated.

    Raises:
        InvalidRequestException: A client secret was sent in a GET query string.
    """
    if request.method == "GET" and CLIENT_SECRET in request.query:
        raise InvalidRequestException("The client_secret may not be sent in a query string.")

    try:
        header = parse_basic_auth(request.authorization)
    except ValueError as e:
        return Credentials.failed(str(e))

    params = request.parameters
    source = CredentialSource.QUERY if request.method == "GET" else CredentialSource.BODY
    if request.count(CLIENT_ID, params) > 1 or request.count(CLIENT_SECRET, params) > 1:
        return Credentials.failed("Repeated client credential parameters")

    request_id = request.get_one(CLIENT_ID, params) or None
    request_secret = request.get_one(CLIENT_SECRET, params) or None

    if request_secret and not request_id:
        return Credentials.failed("Client secret supplied without a client id")

    if header is not None:
        header_id, header_secret = header
        login = parse_id(header_id)
        if login is None:
            return Credentials.failed("Unparseable client id in authorization header")
        if request_id is not None:
            if parse_id(request_id) != login:
                return Credentials.failed("Client id in header and request differ")
            if request_secret:
                return Credentials.failed("Client secret supplied in both header and request")
        return Credentials(login=login, password=header_secret or None, source=CredentialSource.HEADER)

    if request_id is None:
        return Credentials()

    login = parse_id(request_id)
    if login is None:
        return Credentials.failed("Unparseable client id in request")

    return Credentials(login=login, password=request_secret, source=source)
