"""Application configuration and environment settings"""
from typing import Optional
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

SEPOLIA_CHAIN_ID = 11155111

class ChainSettings(BaseModel):
    """On-chain connection settings"""
    rpc_url: Optional[str] = Field(None, description="JSON-RPC endpoint")
    chain_id: int = Field(..., description="Expected chain ID")
    token_address: str = Field(..., description="Token contract address")
    token_decimals: int = Field(..., description="Token fixed-point decimals")
    owner_private_key: Optional[str] = Field(None, description="Token owner signing key")
    receipt_timeout: float = Field(..., description="Seconds web3 waits for a receipt")
    receipt_poll_latency: float = Field(..., description="Seconds between receipt polls")
    rpc_timeout: float = Field(..., description="HTTP timeout for RPC calls")

class Settings(BaseSettings):
    """Application settings loaded from environment variables"""
    # Record store selection
    RECORD_STORE: str = Field("sql", description="Record store backend: 'sql' or 'supabase'")

    # Database settings, DATABASE_URL wins over the individual parts
    DATABASE_URL: Optional[str] = Field(None, description="Full SQLAlchemy database URL")
    DB_HOST: str = Field("localhost", description="Database host")
    DB_PORT: str = Field("5432", description="Database port")
    DB_NAME: str = Field("communal_rewards", description="Database name")
    DB_USER: str = Field("communal_rewards", description="Database user")
    DB_PASSWORD: Optional[str] = Field(None, description="Database password")
    DB_SSL_MODE: str = Field("prefer", description="PostgreSQL sslmode")

    # Supabase settings
    SUPABASE_URL: Optional[str] = Field(None, description="Supabase project URL")
    SUPABASE_SERVICE_KEY: Optional[str] = Field(None, description="Supabase service role key")

    # Chain settings
    RPC_URL: Optional[str] = Field(None, description="JSON-RPC endpoint")
    CHAIN_ID: int = Field(SEPOLIA_CHAIN_ID, description="Chain the token is deployed on")
    TOKEN_ADDRESS: str = Field(
        "0x494431f194ae0ad6328af03ac850c38a0aa639f9",
        description="Communal Score Token contract address"
    )
    TOKEN_DECIMALS: int = Field(18, description="Token fixed-point decimals")
    OWNER_PRIVATE_KEY: Optional[str] = Field(None, description="Private key of the token owner account")
    RECEIPT_TIMEOUT: float = Field(120.0, description="Seconds to wait for a transaction receipt")
    RECEIPT_POLL_LATENCY: float = Field(2.0, description="Seconds between receipt polls")
    RPC_TIMEOUT: float = Field(30.0, description="HTTP timeout for RPC requests")

    LOG_LEVEL: str = Field("INFO", description="Root log level")

    @property
    def chain_settings(self) -> ChainSettings:
        """Get chain settings as a separate model"""
        return ChainSettings(
            rpc_url=self.RPC_URL,
            chain_id=self.CHAIN_ID,
            token_address=self.TOKEN_ADDRESS,
            token_decimals=self.TOKEN_DECIMALS,
            owner_private_key=self.OWNER_PRIVATE_KEY,
            receipt_timeout=self.RECEIPT_TIMEOUT,
            receipt_poll_latency=self.RECEIPT_POLL_LATENCY,
            rpc_timeout=self.RPC_TIMEOUT,
        )

    model_config = SettingsConfigDict(
        env_file='.env',
        env_file_encoding='utf-8',
        case_sensitive=True
    )

settings = Settings()
