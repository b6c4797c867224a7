from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""
    
    # Database settings
    database_url: str = "sqlite:///./gadgets.db"
    
    # Security settings (REQUIRED for production)
    secret_key: str  # Must be set in environment - no default for security
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 30
    
    # CORS settings
    allowed_origins: list[str] = ["http://localhost:3000"]
    
    # Self-destruct workflow
    destruction_code_ttl_seconds: int = 300
    destruction_max_attempts: int = 3
    destruction_code_length: int = 6
    destruction_sweep_interval_seconds: int = 60
    expose_confirmation_code: bool = False  # Simulation mode: echo the code in the response
    
    # Out-of-band code delivery
    notification_webhook_url: Optional[str] = None
    notification_timeout: int = 10
    
    # Application settings
    app_name: str = "Gadget Vault"
    debug: bool = False
    log_level: str = "INFO"
    rate_limit_enabled: bool = True
    testing: bool = False
    
    class Config:
        env_file = ".env"


settings = Settings()
