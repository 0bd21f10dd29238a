from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional, List


class Settings(BaseSettings):
    # Supabase
    supabase_url: str = ""
    supabase_key: str = ""
    supabase_service_role_key: Optional[str] = None  # Needed for storage writes and background sweeps

    # Storage
    tool_images_bucket: str = "tool-images"
    thumbnail_sizes: str = "thumbnail:150,medium:400"
    thumbnail_jpeg_quality: int = 85

    # AI gateway (OpenAI-compatible chat completions)
    ai_gateway_url: str = "https://ai.gateway.lovable.dev/v1/chat/completions"
    ai_gateway_api_key: Optional[str] = None
    ai_analysis_model: str = "google/gemini-2.5-flash"
    ai_request_timeout: float = 60.0
    batch_analysis_delay_sec: float = 0.5

    # Requests / invitations
    overdue_sweep_enabled: bool = False
    overdue_sweep_interval_sec: int = 3600
    invite_expiry_enforced: bool = False
    invite_ttl_days: int = 7

    # App
    app_name: str = "borrow-buddy"
    debug: bool = False
    environment: str = "development"  # development | staging | production
    log_level: str = "INFO"
    cors_origins: str = "http://localhost:3000,http://localhost:5173,http://127.0.0.1:3000,http://127.0.0.1:5173"
    rate_limit: str = "100/minute"  # slowapi format, e.g. "100/minute"

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    def get_cors_origins_list(self) -> List[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    def get_thumbnail_sizes(self) -> dict:
        """Parse "name:px,name:px" into an ordered {name: px} mapping."""
        sizes = {}
        for item in self.thumbnail_sizes.split(","):
            if ":" not in item:
                continue
            name, px = item.split(":", 1)
            sizes[name.strip()] = int(px)
        return sizes

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        env_prefix="",  # No prefix needed
        extra="ignore"
    )


settings = Settings()
