from __future__ import annotations

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # --- app ---
    app_name: str = "App Server"
    server_name: str = "app-server"  # reported as "server" in metrics snapshots

    # --- server ---
    host: str = "0.0.0.0"
    port: int = 3000
    log_level: str = "info"

    # --- cpu sampling ---
    cpu_sample_timeout: float = 1.5  # seconds before usagePercent gives up
    cpu_sample_interval: float = 1.0  # seconds between tick counter reads

    model_config = {"env_file": ".env"}


settings = Settings()
