# Infrastructure clients
from clients.vault_client import (
    VaultClient,
    VaultError,
    get_database_url,
    get_valkey_url,
    get_stripe_config,
    get_backend_config,
)
from clients.postgres_client import PostgresClient, Transaction
from clients.valkey_client import ValkeyClient
from clients.functions_client import FunctionsClient, FunctionCallError, FunctionAuthError
from clients.identity_client import (
    IdentityClient,
    IdentityProviderError,
    IdentityUser,
    InvalidAccessTokenError,
)
from clients.stripe_client import (
    PaymentDeclinedError,
    PaymentGatewayClient,
    PaymentGatewayError,
    PaymentIntentResult,
)
