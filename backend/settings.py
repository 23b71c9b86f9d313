from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    app_name: str = "UMap API"
    debug: bool = False
    host: str = "0.0.0.0"
    port: int = 4000
    log_level: str = "INFO"
    # CORS: "*" for dev; in production set to comma-separated origins, e.g. "https://app.example.com"
    cors_origins: str = "*"
    app_db_path: str = "data/umap.db"  # Events + venues. Path relative to backend root, or absolute

    # Nearby search
    default_radius_m: float = 1000.0
    venues_default_radius_m: float = 10_000.0
    default_max_results: int = 100
    max_candidates: int = 10_000  # Search fails with 400 past this many rows in the bounding box
    source_page_size: int = 500

    # Optional API key auth. When enabled, requests must include X-API-Key or Authorization: Bearer <key>.
    api_key_required: bool = False
    api_keys: str = ""  # Comma-separated list of valid keys (no spaces). Example: API_KEYS=key1,key2

    rate_limit: str = "100/minute"


def get_settings() -> Settings:
    return Settings()
