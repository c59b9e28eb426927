from __future__ import annotations

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    # Polymarket CLOB (read-only: order books / midpoints)
    polymarket_host: str = "https://clob.polymarket.com"
    polymarket_chain_id: int = 137

    # Gamma Markets API (market / token lookup)
    gamma_api_url: str = "https://gamma-api.polymarket.com"

    # HTTP proxy for geo-restricted APIs (e.g. socks5://127.0.0.1:1080)
    http_proxy: str = ""

    # === Storage ===
    db_path: str = ""  # 空なら data/trade_plans.db

    # === Logging ===
    log_level: str = "INFO"
    structured_logging: bool = False  # True: ファイルログを JSON 形式で出力


settings = Settings()
