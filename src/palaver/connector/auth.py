"""Channel authentication: app credentials, bearer tokens and JWT validation.

Outgoing calls to a channel carry an OAuth token obtained with the bot's app
id and password. Incoming requests carry a JWT signed by the channel (or the
emulator) whose signing keys are published through OpenID metadata.
"""

from __future__ import annotations

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from typing import Any
from urllib.parse import urlparse

import httpx
import jwt

from palaver.infrastructure.metrics import record_connector_request
from palaver.models import Activity

from .errors import ConnectorAuthenticationError, ConnectorError

logger = logging.getLogger(__name__)


class AuthenticationConstants:
    TO_CHANNEL_FROM_BOT_LOGIN_URL = "https://login.microsoftonline.com/botframework.com"
    TO_CHANNEL_FROM_BOT_LOGIN_URL_TEMPLATE = "https://login.microsoftonline.com/{tenant}"
    TO_CHANNEL_FROM_BOT_OAUTH_SCOPE = "https://api.botframework.com"
    TO_BOT_FROM_CHANNEL_TOKEN_ISSUER = "https://api.botframework.com"
    TO_BOT_FROM_CHANNEL_OPENID_METADATA_URL = (
        "https://login.botframework.com/v1/.well-known/openidconfiguration"
    )
    TO_BOT_FROM_EMULATOR_OPENID_METADATA_URL = (
        "https://login.microsoftonline.com/common/v2.0/.well-known/openid-configuration"
    )
    TO_BOT_FROM_EMULATOR_TOKEN_ISSUERS = (
        "https://sts.windows.net/d6d49420-f39b-4df7-a1dc-d59a935871db/",
        "https://login.microsoftonline.com/d6d49420-f39b-4df7-a1dc-d59a935871db/v2.0",
        "https://sts.windows.net/f8cdef31-a31e-4b4a-93e4-5f571e91255a/",
        "https://login.microsoftonline.com/f8cdef31-a31e-4b4a-93e4-5f571e91255a/v2.0",
        "https://sts.windows.net/cab8a31a-1906-4287-a0d8-4eef66b95f6e/",
        "https://login.microsoftonline.us/cab8a31a-1906-4287-a0d8-4eef66b95f6e/v2.0",
    )
    ALLOWED_SIGNING_ALGORITHMS = ("RS256", "RS384", "RS512")
    DEFAULT_CHANNEL_AUTH_TENANT = "botframework.com"

    AUTHORIZED_PARTY = "azp"
    AUDIENCE_CLAIM = "aud"
    KEY_ID_HEADER = "kid"
    SERVICE_URL_CLAIM = "serviceurl"
    VERSION_CLAIM = "ver"
    APP_ID_CLAIM = "appid"

    ANONYMOUS_SKILL_APP_ID = "AnonymousSkill"
    ANONYMOUS_AUTH_TYPE = "anonymous"
    DEFAULT_CLOCK_SKEW_SECONDS = 300


class ClaimsIdentity:
    """Claims from a validated token."""

    def __init__(
        self,
        claims: dict[str, Any],
        is_authenticated: bool,
        authentication_type: str | None = None,
    ):
        self.claims = claims
        self.is_authenticated = is_authenticated
        self.authentication_type = authentication_type

    def get_claim_value(self, claim_type: str) -> Any:
        return self.claims.get(claim_type)

    def __repr__(self) -> str:
        return (
            f"ClaimsIdentity(is_authenticated={self.is_authenticated}, "
            f"authentication_type={self.authentication_type!r})"
        )


class SkillValidation:
    @staticmethod
    def is_skill_claim(claims: dict[str, Any] | None) -> bool:
        """True if the claims come from a bot calling this bot as a skill."""
        if not claims:
            return False

        if claims.get(AuthenticationConstants.APP_ID_CLAIM) == AuthenticationConstants.ANONYMOUS_SKILL_APP_ID:
            return True

        if AuthenticationConstants.VERSION_CLAIM not in claims:
            return False

        audience = claims.get(AuthenticationConstants.AUDIENCE_CLAIM)
        if not audience or audience == AuthenticationConstants.TO_BOT_FROM_CHANNEL_TOKEN_ISSUER:
            return False

        app_id = JwtTokenValidation.get_app_id_from_claims(claims)
        if not app_id:
            return False

        return app_id != audience


# =============================================================================
# Credentials
# =============================================================================


class CredentialProvider(ABC):
    """Validates app ids on incoming tokens and supplies passwords."""

    @abstractmethod
    async def is_valid_appid(self, app_id: str) -> bool:
        pass

    @abstractmethod
    async def get_app_password(self, app_id: str) -> str | None:
        pass

    @abstractmethod
    async def is_authentication_disabled(self) -> bool:
        pass


class SimpleCredentialProvider(CredentialProvider):
    """A single app id and password; an empty app id disables authentication."""

    def __init__(self, app_id: str, password: str):
        self.app_id = app_id
        self.password = password

    async def is_valid_appid(self, app_id: str) -> bool:
        return self.app_id == app_id

    async def get_app_password(self, app_id: str) -> str | None:
        return self.password if self.app_id == app_id else None

    async def is_authentication_disabled(self) -> bool:
        return not self.app_id


class MicrosoftAppCredentials:
    """Client-credentials tokens for calling a channel's connector service.

    Tokens are cached per app id and scope until shortly before they expire.
    Service URLs the bot may send tokens to are registered with
    `trust_service_url`.
    """

    TRUST_DURATION_SECONDS = 24 * 60 * 60
    REFRESH_MARGIN_SECONDS = 300

    _trusted_hosts: dict[str, float] = {}
    _token_cache: dict[str, tuple[str, float]] = {}

    def __init__(
        self,
        app_id: str,
        password: str,
        channel_auth_tenant: str | None = None,
        oauth_scope: str | None = None,
        http_client: httpx.AsyncClient | None = None,
    ):
        self.microsoft_app_id = app_id
        self.microsoft_app_password = password
        tenant = channel_auth_tenant or AuthenticationConstants.DEFAULT_CHANNEL_AUTH_TENANT
        self.oauth_endpoint = AuthenticationConstants.TO_CHANNEL_FROM_BOT_LOGIN_URL_TEMPLATE.format(
            tenant=tenant
        )
        self.oauth_scope = oauth_scope or AuthenticationConstants.TO_CHANNEL_FROM_BOT_OAUTH_SCOPE
        self._http_client = http_client

    @property
    def token_url(self) -> str:
        return f"{self.oauth_endpoint}/oauth2/v2.0/token"

    @property
    def _cache_key(self) -> str:
        return f"{self.microsoft_app_id}:{self.oauth_scope}"

    async def get_token(self, force_refresh: bool = False) -> str:
        """Get a bearer token, fetching a new one when missing or expiring.

        Raises:
            ConnectorAuthenticationError: If the login endpoint rejects the credentials.
            ConnectorError: On other token endpoint failures.
        """
        if not self.microsoft_app_id:
            return ""

        cached = self._token_cache.get(self._cache_key)
        if cached and not force_refresh and cached[1] > time.time():
            return cached[0]

        token, expires_in = await self._fetch_token()
        expires_at = time.time() + max(expires_in - self.REFRESH_MARGIN_SECONDS, 0)
        self._token_cache[self._cache_key] = (token, expires_at)
        return token

    async def _fetch_token(self) -> tuple[str, int]:
        scope = self.oauth_scope
        if not scope.endswith("/.default"):
            scope = f"{scope.rstrip('/')}/.default"

        data = {
            "grant_type": "client_credentials",
            "client_id": self.microsoft_app_id,
            "client_secret": self.microsoft_app_password,
            "scope": scope,
        }

        start = time.perf_counter()
        try:
            if self._http_client is not None:
                response = await self._http_client.post(self.token_url, data=data)
            else:
                async with httpx.AsyncClient(timeout=30) as client:
                    response = await client.post(self.token_url, data=data)
        except httpx.TimeoutException:
            record_connector_request("get_token", "timeout", time.perf_counter() - start)
            raise ConnectorError("Token request timed out", retryable=True)

        record_connector_request("get_token", str(response.status_code), time.perf_counter() - start)

        if response.status_code in (400, 401, 403):
            raise ConnectorAuthenticationError(
                f"Failed to acquire token for app id {self.microsoft_app_id}: {response.text}",
                status_code=response.status_code,
            )
        if response.status_code != 200:
            raise ConnectorError(
                f"Token request failed: {response.text}",
                status_code=response.status_code,
                retryable=response.status_code >= 500,
            )

        payload = response.json()
        return payload["access_token"], int(payload.get("expires_in", 3600))

    @classmethod
    def trust_service_url(cls, service_url: str, expiration: float | None = None) -> None:
        """Allow tokens to be sent to `service_url` until `expiration` (epoch seconds)."""
        host = urlparse(service_url).netloc
        if host:
            cls._trusted_hosts[host] = expiration or time.time() + cls.TRUST_DURATION_SECONDS

    @classmethod
    def is_trusted_service(cls, service_url: str) -> bool:
        host = urlparse(service_url).netloc
        expiration = cls._trusted_hosts.get(host)
        if expiration is None:
            return False
        return expiration > time.time() - AuthenticationConstants.DEFAULT_CLOCK_SKEW_SECONDS

    @classmethod
    def clear_caches(cls) -> None:
        cls._trusted_hosts.clear()
        cls._token_cache.clear()


# =============================================================================
# Token validation
# =============================================================================


class OpenIdMetadataKeyResolver:
    """Finds the signing key for a token through OpenID metadata.

    The JWKS endpoint is looked up once and refreshed daily; keys are cached
    by PyJWT's `PyJWKClient`.
    """

    REFRESH_SECONDS = 24 * 60 * 60

    def __init__(self, metadata_url: str, http_client: httpx.AsyncClient | None = None):
        self.metadata_url = metadata_url
        self._http_client = http_client
        self._jwk_client: jwt.PyJWKClient | None = None
        self._loaded_at = 0.0

    async def get_signing_key(self, token: str) -> Any:
        if self._jwk_client is None or time.time() - self._loaded_at > self.REFRESH_SECONDS:
            jwks_uri = await self._fetch_jwks_uri()
            self._jwk_client = jwt.PyJWKClient(jwks_uri, cache_keys=True)
            self._loaded_at = time.time()

        try:
            signing_key = await asyncio.to_thread(self._jwk_client.get_signing_key_from_jwt, token)
        except jwt.PyJWKClientError as err:
            raise ConnectorAuthenticationError(f"Signing key not found: {err}") from err
        return signing_key.key

    async def _fetch_jwks_uri(self) -> str:
        start = time.perf_counter()
        if self._http_client is not None:
            response = await self._http_client.get(self.metadata_url)
        else:
            async with httpx.AsyncClient(timeout=30) as client:
                response = await client.get(self.metadata_url)
        record_connector_request("openid_metadata", str(response.status_code), time.perf_counter() - start)

        if response.status_code != 200:
            raise ConnectorError(
                f"Failed to load OpenID metadata from {self.metadata_url}",
                status_code=response.status_code,
                retryable=response.status_code >= 500,
            )
        return response.json()["jwks_uri"]


class JwtTokenValidation:
    """Authenticates incoming channel requests."""

    _key_resolvers: dict[str, OpenIdMetadataKeyResolver] = {}

    @staticmethod
    async def authenticate_request(
        activity: Activity,
        auth_header: str | None,
        credentials: CredentialProvider,
    ) -> ClaimsIdentity:
        """Validate the Authorization header of an incoming activity.

        Requests without a header are accepted as anonymous only while
        authentication is disabled. The activity's service URL is trusted
        for outgoing calls once the request is authenticated.

        Raises:
            ConnectorAuthenticationError: If the request is not authorized.
        """
        if not auth_header:
            if await credentials.is_authentication_disabled():
                return ClaimsIdentity({}, True, AuthenticationConstants.ANONYMOUS_AUTH_TYPE)
            raise ConnectorAuthenticationError("Unauthorized Access. Request is not authorized")

        identity = await JwtTokenValidation.validate_auth_header(
            auth_header, credentials, activity.channel_id, activity.service_url
        )
        if activity.service_url:
            MicrosoftAppCredentials.trust_service_url(activity.service_url)
        return identity

    @staticmethod
    async def validate_auth_header(
        auth_header: str,
        credentials: CredentialProvider,
        channel_id: str | None,
        service_url: str | None = None,
    ) -> ClaimsIdentity:
        if not auth_header:
            raise ConnectorAuthenticationError("auth_header cannot be empty")

        if not JwtTokenValidation.is_valid_token_format(auth_header):
            raise ConnectorAuthenticationError("Invalid token format")

        token = auth_header.split(" ")[1]
        if JwtTokenValidation.is_token_from_emulator(auth_header):
            return await JwtTokenValidation._authenticate_emulator_token(token, credentials)
        return await JwtTokenValidation._authenticate_channel_token(token, credentials, service_url)

    @staticmethod
    def is_valid_token_format(auth_header: str | None) -> bool:
        if not auth_header:
            return False
        parts = auth_header.split(" ")
        return len(parts) == 2 and parts[0].lower() == "bearer" and bool(parts[1])

    @staticmethod
    def is_token_from_emulator(auth_header: str) -> bool:
        if not JwtTokenValidation.is_valid_token_format(auth_header):
            return False
        try:
            claims = jwt.decode(auth_header.split(" ")[1], options={"verify_signature": False})
        except jwt.InvalidTokenError:
            return False
        return claims.get("iss") in AuthenticationConstants.TO_BOT_FROM_EMULATOR_TOKEN_ISSUERS

    @staticmethod
    def get_app_id_from_claims(claims: dict[str, Any]) -> str | None:
        """App id of the caller: ``appid`` for v1 tokens, ``azp`` for v2."""
        version = claims.get(AuthenticationConstants.VERSION_CLAIM)
        if not version or version == "1.0":
            return claims.get(AuthenticationConstants.APP_ID_CLAIM)
        if version == "2.0":
            return claims.get(AuthenticationConstants.AUTHORIZED_PARTY)
        return None

    @classmethod
    def get_key_resolver(cls, metadata_url: str) -> OpenIdMetadataKeyResolver:
        resolver = cls._key_resolvers.get(metadata_url)
        if resolver is None:
            resolver = OpenIdMetadataKeyResolver(metadata_url)
            cls._key_resolvers[metadata_url] = resolver
        return resolver

    @classmethod
    def set_key_resolver(cls, metadata_url: str, resolver: OpenIdMetadataKeyResolver) -> None:
        """Use `resolver` for tokens whose metadata URL is `metadata_url`."""
        cls._key_resolvers[metadata_url] = resolver

    @classmethod
    async def _decode(cls, token: str, metadata_url: str, issuers: tuple[str, ...]) -> dict[str, Any]:
        key = await cls.get_key_resolver(metadata_url).get_signing_key(token)
        try:
            return jwt.decode(
                token,
                key,
                algorithms=list(AuthenticationConstants.ALLOWED_SIGNING_ALGORITHMS),
                issuer=list(issuers),
                leeway=AuthenticationConstants.DEFAULT_CLOCK_SKEW_SECONDS,
                options={"verify_aud": False},
            )
        except jwt.ExpiredSignatureError as err:
            raise ConnectorAuthenticationError("Token has expired") from err
        except jwt.InvalidTokenError as err:
            raise ConnectorAuthenticationError(f"Invalid token: {err}") from err

    @classmethod
    async def _authenticate_channel_token(
        cls,
        token: str,
        credentials: CredentialProvider,
        service_url: str | None,
    ) -> ClaimsIdentity:
        claims = await cls._decode(
            token,
            AuthenticationConstants.TO_BOT_FROM_CHANNEL_OPENID_METADATA_URL,
            (AuthenticationConstants.TO_BOT_FROM_CHANNEL_TOKEN_ISSUER,),
        )

        audience = claims.get(AuthenticationConstants.AUDIENCE_CLAIM)
        if not audience or not await credentials.is_valid_appid(audience):
            raise ConnectorAuthenticationError(f"Invalid AppId passed on token: {audience}")

        if service_url is not None:
            token_service_url = claims.get(AuthenticationConstants.SERVICE_URL_CLAIM)
            if not token_service_url or token_service_url != service_url:
                raise ConnectorAuthenticationError("Unauthorized. ServiceUrl claim does not match.")

        logger.debug("Authenticated channel token for app id %s", audience)
        return ClaimsIdentity(claims, True)

    @classmethod
    async def _authenticate_emulator_token(cls, token: str, credentials: CredentialProvider) -> ClaimsIdentity:
        claims = await cls._decode(
            token,
            AuthenticationConstants.TO_BOT_FROM_EMULATOR_OPENID_METADATA_URL,
            AuthenticationConstants.TO_BOT_FROM_EMULATOR_TOKEN_ISSUERS,
        )

        version = claims.get(AuthenticationConstants.VERSION_CLAIM)
        if version is None:
            raise ConnectorAuthenticationError("'ver' claim is required on Emulator Tokens.")
        if version not in ("", "1.0", "2.0"):
            raise ConnectorAuthenticationError(f"Unknown Emulator Token version '{version}'.")

        app_id = cls.get_app_id_from_claims(claims)
        if not app_id:
            claim = AuthenticationConstants.AUTHORIZED_PARTY if version == "2.0" else AuthenticationConstants.APP_ID_CLAIM
            raise ConnectorAuthenticationError(
                f"'{claim}' claim is required on Emulator Token version '{version or '1.0'}'."
            )
        if not await credentials.is_valid_appid(app_id):
            raise ConnectorAuthenticationError(f"Invalid AppId passed on token: '{app_id}'.")

        logger.debug("Authenticated emulator token for app id %s", app_id)
        return ClaimsIdentity(claims, True)
