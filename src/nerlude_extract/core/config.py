from __future__ import annotations

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    environment: str = "dev"
    app_base_url: str = "http://localhost:3000"
    secret_key: str = "change-me"

    database_url: str = "sqlite:///./nerlude_extract.db"

    init_user_email: str | None = None
    init_user_password: str | None = None

    access_token_exp_minutes: int = 60 * 24

    gemini_api_key: str | None = None
    gemini_base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    gemini_model: str = "gemini-2.0-flash"
    extraction_timeout_seconds: float = 60.0
    extraction_temperature: float = 0.1
    extraction_max_output_tokens: int = 8192
    extraction_log_preview_chars: int = 500
    max_documents_per_request: int = 10

    mailbox_api_key: str | None = None
    mailbox_base_url: str = "https://api1.unipile.com:13111"
    mailbox_timeout_seconds: float = 30.0
    mailbox_list_limit: int = 250
    max_candidate_emails: int = 20
    max_attachments_per_email: int = 3
    attachment_fetch_workers: int = 3
    default_days_back: int = 30

    registry_path: Path | None = None
    match_score_canonical: float = 1.0
    match_score_alias: float = 0.9
    match_score_substring: float = 0.6
    match_min_substring_length: int = 3


settings = Settings()
