"""Application configuration.

Loads settings from environment variables (and an optional .env file)
with sensible defaults. Without a dispatch token or IDP auth, the booking
client runs against built-in mock responses.
"""

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    api_version: str = "0.1.0"

    # Booking API
    dispatch_graphql_endpoint: str = Field(
        default="https://monkey.graph.qa.dispatchfog.io/graphql",
        description="Booking GraphQL endpoint",
    )
    dispatch_auth_token: str = Field(
        default="",
        description="Static bearer token for the booking API",
    )
    dispatch_organization_id: str = Field(
        default="",
        description="Organization druid attached to estimates and orders",
    )
    request_timeout: float = 30.0
    mock_latency_seconds: float = Field(
        default=0.5,
        description="Simulated latency of the mock booking client",
    )

    # IDP client-credentials auth
    use_idp_auth: bool = False
    idp_token_endpoint: str = ""
    idp_client_id: str = ""
    idp_client_secret: str = ""
    idp_scope: str = "dispatch:api"

    # Conversational AI
    gemini_api_key: str = Field(
        default="",
        description="Gemini API key; AI replies are disabled when empty",
    )
    ai_model: str = "gemini-1.5-pro"
    ai_max_output_tokens: int = 1000

    # Sessions
    session_max_age_minutes: int = 60

    # Web server
    web_host: str = "0.0.0.0"
    web_port: int = 8080

    # Logging
    log_level: str = "INFO"

    model_config = {
        "env_file": ".env",
        "extra": "ignore",
    }

    @property
    def use_mock_dispatch(self) -> bool:
        """Whether no booking credentials are configured."""
        return not self.dispatch_auth_token and not self.use_idp_auth


settings = Settings()
