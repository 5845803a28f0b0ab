"""
Application configuration using Pydantic settings.

Configuration is loaded from environment variables (or a .env file) with
sensible defaults. Using Pydantic's BaseSettings means we get type
validation at startup and one place that documents every knob.

The "transient" and "filesystem" backends need no credentials, which
enables local development without provisioning object storage.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Bitstore settings loaded from environment variables.
    
    All settings can be overridden via environment variables.
    """
    
    # Object store credentials
    bitstore_access_key: str = Field(
        default="",
        description="Access key for the object store. Blank allows anonymous access."
    )
    bitstore_secret_key: str = Field(
        default="",
        description="Secret key for the object store."
    )
    
    # Backend selection
    bitstore_backend: str = Field(
        default="s3",
        description="Storage provider: s3, aws-s3, r2, transient or filesystem."
    )
    bitstore_endpoint_url: Optional[str] = Field(
        default=None,
        description="Object store endpoint URL. None uses the provider default (AWS)."
    )
    bitstore_region: Optional[str] = Field(
        default=None,
        description="Region passed to the S3 client. None uses the AWS default chain; the r2 backend falls back to 'auto'."
    )
    
    # Layout
    bitstore_bucket_name: str = Field(
        default="",
        description="Bucket holding all bitstreams. Blank defaults to dspace-asset-<hostname>."
    )
    bitstore_subfolder: str = Field(
        default="",
        description="Optional key prefix inside the bucket."
    )
    bitstore_staging_dir: Optional[str] = Field(
        default=None,
        description="Directory for upload staging files. None uses the system temp dir."
    )
    bitstore_asset_dir: str = Field(
        default="assetstore",
        description="Root directory for the filesystem backend."
    )
    
    # Site
    dspace_hostname: str = Field(
        default="localhost",
        description="Site hostname, used to derive the default bucket name."
    )
    
    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )
    
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )
    
    @property
    def backend_name(self) -> str:
        """Normalised backend identifier."""
        return self.bitstore_backend.strip().lower()
    
    @property
    def needs_credentials(self) -> bool:
        return self.backend_name not in ("transient", "filesystem")
    
    def validate_required_fields(self) -> list[str]:
        """
        Report configuration that is missing for the selected backend.
        
        Advisory only: blank credentials are allowed so that public
        buckets keep working. Callers log the result and carry on.
        """
        missing = []
        
        if not self.backend_name:
            missing.append("BITSTORE_BACKEND")
        
        if self.needs_credentials:
            if not self.bitstore_access_key.strip():
                missing.append("BITSTORE_ACCESS_KEY")
            if not self.bitstore_secret_key.strip():
                missing.append("BITSTORE_SECRET_KEY")
        
        return missing


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.
    
    Settings are loaded once per process. For tests, call
    get_settings.cache_clear() to reset.
    """
    return Settings()
