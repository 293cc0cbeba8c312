"""Application configuration and environment settings"""
from typing import Optional
from pydantic import BaseModel, Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

# Fields never written to logs or dumped configuration
SECRET_FIELDS = {'GEMINI_API_KEY', 'GEMINI_API_SECRET'}

class Credentials(BaseModel):
    """Gemini API key pair, read-only once created"""
    public_key: SecretStr = Field(..., description="Gemini API key sent in X-GEMINI-APIKEY")
    private_key: SecretStr = Field(..., description="Gemini API secret used to sign payloads")

    model_config = {'frozen': True}

class Settings(BaseSettings):
    """Adapter settings loaded from environment variables"""
    # Credentials
    GEMINI_API_KEY: Optional[str] = Field(None, description="Gemini API key")
    GEMINI_API_SECRET: Optional[str] = Field(None, description="Gemini API secret")

    # Transport
    GEMINI_BASE_URL: str = Field("https://api.gemini.com/v1", description="Gemini REST API root")
    REQUEST_TIMEOUT: float = Field(10.0, description="Seconds to wait for each HTTP call")

    # Trade history pagination
    TRADES_PAGE_LIMIT: int = Field(100, description="Trades requested per page")
    TRADES_PAGE_DELAY: float = Field(1.0, description="Seconds to wait before requesting the next page")

    # Market data / orders
    ORDER_BOOK_DEPTH: int = Field(100, description="Default number of levels per book side")
    CLIENT_ORDER_ID_PREFIX: str = Field("gemini_exchange_", description="Prefix for generated client order ids")

    LOG_LEVEL: str = Field("INFO", description="Log level used by the command line runner")

    @property
    def credentials(self) -> Optional[Credentials]:
        """Get the API key pair, or None when either half is missing"""
        if not self.GEMINI_API_KEY or not self.GEMINI_API_SECRET:
            return None
        return Credentials(
            public_key=self.GEMINI_API_KEY,
            private_key=self.GEMINI_API_SECRET
        )

    model_config = SettingsConfigDict(
        env_file='.env',
        env_file_encoding='utf-8',
        case_sensitive=True,
        extra='ignore'
    )

settings = Settings()
