"""Channel connector client and authentication."""

from .auth import (
    AuthenticationConstants,
    ClaimsIdentity,
    CredentialProvider,
    JwtTokenValidation,
    MicrosoftAppCredentials,
    OpenIdMetadataKeyResolver,
    SimpleCredentialProvider,
    SkillValidation,
)
from .client import ConnectorClient, ConversationsOperations
from .errors import ConnectorAuthenticationError, ConnectorError, NotFoundError, ThrottledError

__all__ = [
    # Errors
    "ConnectorError",
    "ConnectorAuthenticationError",
    "NotFoundError",
    "ThrottledError",
    # Authentication
    "AuthenticationConstants",
    "ClaimsIdentity",
    "CredentialProvider",
    "JwtTokenValidation",
    "MicrosoftAppCredentials",
    "OpenIdMetadataKeyResolver",
    "SimpleCredentialProvider",
    "SkillValidation",
    # Client
    "ConnectorClient",
    "ConversationsOperations",
]
