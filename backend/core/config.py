"""Core configuration with Pydantic v2 Settings."""

from decimal import Decimal

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    app_env: str = "development"
    log_level: str = "INFO"

    # Peppol network (SML zone used for participant hostname hashing)
    PEPPOL_SML_DOMAIN: str = "edelivery.tech.ec.europa.eu"
    PEPPOL_DEFAULT_TRANSPORT_PROFILE: str = "peppol-transport-as4-v2_0"

    # Access Point gateway
    PEPPOL_AP_URL: str = ""
    PEPPOL_AP_API_KEY: str = ""
    PEPPOL_AP_TIMEOUT_MS: int = 30_000
    PEPPOL_MESSAGE_ID_PREFIX: str = "b2b-peppol"

    # Own participant (sender) identity
    PEPPOL_SENDER_ID: str = ""
    PEPPOL_SENDER_SCHEME: str = "0088"
    PEPPOL_SENDER_NAME: str = ""
    PEPPOL_SENDER_COUNTRY: str = ""

    # Lifecycle registry
    PEPPOL_DOCUMENT_ID_PREFIX: str = "peppol"

    # Rule engine: max. absolute deviation between computed and declared totals
    VALIDATION_TOLERANCE: Decimal = Decimal("0.01")

    @property
    def ap_timeout_seconds(self) -> float:
        return self.PEPPOL_AP_TIMEOUT_MS / 1000.0


# Global settings instance
settings = Settings()
