import os
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# XDG Standard Directories
XDG_CONFIG_HOME = Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))

APP_CONFIG_DIR = XDG_CONFIG_HOME / "starchain"

class Settings(BaseSettings):
    app_name: str = "Star Registry"

    # Genesis Configuration
    genesis_message: str = Field(
        "Genesis Block",
        description="Data embedded in the first block"
    )

    # Claim protocol
    protocol_tag: str = Field(
        "starRegistry",
        description="Trailing tag of every ownership challenge message"
    )
    claim_window_seconds: int = Field(
        300,
        gt=0,
        description="Seconds a signed challenge stays valid"
    )

    log_level: str = Field("INFO", description="Log level used by the command line front-end")

    # Environment variable config
    model_config = SettingsConfigDict(
        env_prefix="STARCHAIN_",
        # Load from global config OR local .env
        env_file=[str(APP_CONFIG_DIR / ".env"), ".env"],
        env_file_encoding="utf-8",
        extra="ignore"
    )

settings = Settings()
