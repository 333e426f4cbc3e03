# Overview: Credential extraction for incoming requests (bearer header or session cookie).

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Mapping


DEFAULT_COOKIE_NAME = "authjs.session-token"


class CredentialKind(enum.Enum):
    NONE = "none"
    BEARER = "bearer"
    COOKIE = "cookie"


@dataclass(frozen=True)
class Credential:
    kind: CredentialKind
    token: str | None = None

    @property
    def present(self) -> bool:
        return self.kind is not CredentialKind.NONE


NO_CREDENTIAL = Credential(CredentialKind.NONE)


def extract_credential(
    headers: Mapping[str, str],
    cookies: Mapping[str, str],
    cookie_name: str = DEFAULT_COOKIE_NAME,
) -> Credential:
    """
    Pick the request credential.

    A well-formed "Authorization: Bearer <token>" header wins; otherwise the
    session cookie is used. An empty token counts as absent.
    """
    auth_header = headers.get("Authorization") or ""
    scheme, _, token = auth_header.partition(" ")
    if scheme.lower() == "bearer" and token.strip():
        return Credential(CredentialKind.BEARER, token.strip())

    cookie = cookies.get(cookie_name)
    if cookie:
        return Credential(CredentialKind.COOKIE, cookie)

    return NO_CREDENTIAL
