from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from re import Pattern


class Severity(str, Enum):
    hint = "hint"
    information = "information"
    warning = "warning"
    error = "error"

    @property
    def rank(self) -> int:
        return {"hint": 1, "information": 2, "warning": 3, "error": 4}[self.value]

    @classmethod
    def parse(cls, value: str) -> Severity:
        """Parse a severity name; anything unrecognised becomes ``warning``."""
        try:
            return cls(value.strip().lower())
        except ValueError:
            return cls.warning


class Category(str, Enum):
    secret = "secret"
    config = "config"


@dataclass(frozen=True)
class ValuePattern:
    id: str
    name: str
    category: Category
    regex: Pattern[str]


def _re(pattern: str, *, flags: int = 0) -> Pattern[str]:
    return re.compile(pattern, flags)


# ---------------------------------------------------------------------------
# Identifier substrings
# ---------------------------------------------------------------------------

SECRET_KEY_PATTERNS: tuple[str, ...] = (
    # generic
    "secret",
    "secrets",
    "token",
    "tokens",
    "apikey",
    "api_key",
    "api-key",
    "api key",
    "password",
    "passwd",
    "pass",
    "pwd",
    "credential",
    "credentials",
    "creds",
    # auth / sessions
    "auth",
    "authorization",
    "bearer",
    "session",
    "sessionid",
    "session_id",
    "sid",
    "cookie",
    "cookies",
    "set-cookie",
    "refresh",
    "refresh_token",
    "access",
    "access_token",
    "id_token",
    "csrf",
    "csrf_token",
    "xsrf",
    "xsrf_token",
    "otp",
    "mfa",
    "totp",
    # jwt / signatures
    "jwt",
    "jwtsecret",
    "jwt_secret",
    "signing",
    "signingkey",
    "signing_key",
    "signature",
    "sig",
    # crypto / keys
    "private",
    "privatekey",
    "private_key",
    "publickey",
    "public_key",
    "pem",
    "keystore",
    "key_store",
    "certificate",
    "cert",
    "crt",
    "ssh",
    "rsa",
    "ed25519",
    "encryption",
    "encrypt",
    "decrypt",
    # oauth
    "clientsecret",
    "client_secret",
    "clientid",
    "client_id",
    # api auth headers
    "x-api-key",
    "x_api_key",
    "api_token",
    "api-token",
    "appkey",
    "app_key",
    # database credentials (noisy)
    "dbpassword",
    "db_password",
    "dbuser",
    "db_user",
    "dbusername",
    "db_username",
)

SENSITIVE_HEADERS: frozenset[str] = frozenset(
    {
        "authorization",
        "x-api-key",
        "cookie",
        "set-cookie",
    }
)

CONFIG_KEY_PATTERNS: tuple[str, ...] = (
    "url",
    "baseurl",
    "apiurl",
    "endpoint",
    "host",
    "mongouri",
    "databaseurl",
    "redisurl",
    "uri",
    "href",
    "origin",
    "domain",
)


# ---------------------------------------------------------------------------
# Value shapes, in priority order
# ---------------------------------------------------------------------------

VALUE_PATTERNS: tuple[ValuePattern, ...] = (
    ValuePattern(
        id="aws-access-key",
        name="AWS Access Key",
        category=Category.secret,
        regex=_re(r"AKIA[0-9A-Z]{16}"),
    ),
    ValuePattern(
        id="private-key-header",
        name="Private Key Header",
        category=Category.secret,
        regex=_re(r"-----BEGIN .* PRIVATE KEY-----"),
    ),
    ValuePattern(
        id="bearer-token",
        name="Bearer Token",
        category=Category.secret,
        regex=_re(r"^Bearer\s+[A-Za-z0-9\-._~+/]+=*\Z"),
    ),
    ValuePattern(
        id="sk-prefixed-key",
        name="SK- prefixed key",
        category=Category.secret,
        regex=_re(r"^sk-[A-Za-z0-9]{20,}\Z"),
    ),
    ValuePattern(
        id="jwt-like-token",
        name="JWT-like token",
        category=Category.secret,
        regex=_re(r"^[A-Za-z0-9_-]{10,}\.[A-Za-z0-9_-]{10,}\.[A-Za-z0-9_-]{10,}\Z"),
    ),
    # Only the exact host "localhost" is exempt; localhost-mirror.com is not.
    ValuePattern(
        id="hardcoded-url",
        name="Hardcoded URL",
        category=Category.config,
        regex=_re(r"^https?://(?!localhost(?:[:/?#]|\Z))\S+\Z"),
    ),
)

MIN_KEY_VALUE_LENGTH = 2
MIN_PATTERN_VALUE_LENGTH = 5
