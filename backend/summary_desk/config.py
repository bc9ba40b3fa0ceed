# backend/summary_desk/config.py
from pydantic_settings import BaseSettings
from pathlib import Path
from pydantic import field_validator

class Settings(BaseSettings):
    """Application settings from environment variables"""

    # ===== OBJECT STORAGE (S3-compatible: MinIO, R2, AWS) =====
    storage_backend: str = "s3"  # "s3" or "local" (local is for development and tests)
    s3_endpoint_url: str = ""  # e.g. https://bucket-production.up.railway.app
    s3_access_key_id: str = ""
    s3_secret_access_key: str = ""
    s3_region: str = "us-east-1"
    s3_bucket: str = ""
    s3_force_path_style: bool = True  # MinIO needs path-style addressing
    s3_connect_timeout_seconds: int = 30
    s3_read_timeout_seconds: int = 30
    presign_expiry_seconds: int = 3600  # seconds for signed URL validity
    list_max_keys: int = 1000
    local_storage_root: Path = Path("storage")

    # Key layout
    uploads_prefix: str = "uploads/"
    summaries_prefix: str = "summaries/"

    # Retry for idempotent storage calls (exists, get, list)
    store_retry_attempts: int = 3
    store_retry_delay_seconds: float = 1.0
    store_retry_jitter_seconds: float = 0.0

    # ===== SUMMARIZATION WEBHOOKS (n8n) =====
    summary_webhook_url: str = ""
    spin_up_webhook_url: str = ""
    webhook_auth_key: str = ""
    webhook_auth_header: str = "X-N8N-Auth"
    webhook_timeout_seconds: float = 30.0
    # False = fire-and-forget dispatch, polling starts without waiting for the webhook
    await_trigger_response: bool = True

    # Polling for generated summaries
    summary_poll_interval_seconds: float = 15.0
    summary_poll_timeout_seconds: float = 300.0  # 5 minutes

    # ===== UPLOADS =====
    upload_verify_delay_seconds: float = 5.0
    max_filename_length: int = 255

    # ===== AUTHENTICATION (Clerk) =====
    clerk_secret_key: str = ""  # Get from https://dashboard.clerk.com
    auth_disabled: bool = False  # Development only - every request runs as dev_user_id
    dev_user_id: str = "dev-user"

    # Paths
    log_dir: Path = Path("logs")

    # CORS
    cors_origins: list[str] = ["http://localhost:3000"]
    @field_validator("cors_origins", mode="before")
    def parse_cors_origins(cls, v):
        if isinstance(v, str):
            import json
            try:
                return json.loads(v)
            except json.JSONDecodeError:
                return [v]
        return v

    # Environment
    environment: str = "development"  # development, production

    class Config:
        # Point explicitly to backend/.env so scripts run from repo root still load variables
        env_file = Path(__file__).resolve().parent.parent / ".env"
        case_sensitive = False
        extra = "ignore"  # Allow future env vars without breaking startup

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.log_dir.mkdir(parents=True, exist_ok=True)

    @property
    def s3_configured(self) -> bool:
        return bool(self.s3_access_key_id and self.s3_secret_access_key and self.s3_bucket)

    @property
    def summary_webhook_configured(self) -> bool:
        return bool(self.summary_webhook_url and self.webhook_auth_key)

# Global settings instance
settings = Settings()
