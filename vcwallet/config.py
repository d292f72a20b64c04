from pydantic_settings import BaseSettings, SettingsConfigDict, PydanticBaseSettingsSource, YamlConfigSettingsSource
from pydantic import Field
from typing import List, Optional, Tuple, Type
from pathlib import Path

"""
Manages application settings using Pydantic Settings.

Configuration is read from environment variables (prefixed with `VCW_`), a `.env` file,
and a YAML configuration file (`config.yaml` at the project root). A single `settings`
instance is exposed for the rest of the application.
"""

class Settings(BaseSettings):
    """Wallet settings. Every field can be overridden with a `VCW_`-prefixed environment variable."""
    # Server settings
    host: str = Field(default="0.0.0.0", description="Host to bind the FastAPI server to.")
    port: int = Field(default=3000, description="Port to bind the FastAPI server to.")
    reload: bool = Field(default=False, description="Enable auto-reload for the FastAPI server (Uvicorn's --reload flag).")
    api_prefix: str = Field(default="/api", description="Path prefix for all credential API routes.")
    cors_origins: List[str] = Field(default=["*"], description="Origins allowed to call the API from a browser.")

    # Application metadata
    app_name: str = Field(default="vcwallet", description="Application name, used for logging and the OpenAPI title.")

    # Operational settings
    debug: bool = Field(default=False, description="Enable debug mode.")
    log_level: str = Field(default="INFO", description="Logging level (e.g., DEBUG, INFO, WARNING, ERROR, CRITICAL).")
    log_format: str = Field(
        default="json",
        description="Log format. Supported values: 'json' for structured JSON logs, 'text' for plain text logs."
    )

    # Storage settings
    data_dir: Path = Field(default=Path("./data"), description="Directory holding the credential store file.")
    credentials_file_name: str = Field(default="credentials.json", description="File name of the credential store inside `data_dir`.")

    # Issuer settings
    issuer_key_file: Optional[Path] = Field(
        default=None,
        description="Path of a JSON issuer key file. When unset, a fresh issuer key is generated on every start."
    )
    enforce_expiration: bool = Field(
        default=True,
        description="Reject credentials whose expirationDate (or JWT 'exp') lies in the past during verification."
    )

    model_config = SettingsConfigDict(
        env_prefix="VCW_", # Prefix for environment variables (e.g., VCW_HOST, VCW_DATA_DIR)
        extra="ignore",
        validate_default=True,
        # config.yaml lives at the project root, one level above the package directory
        yaml_file=Path(__file__).resolve().parent.parent / "config.yaml"
    )

    @property
    def credentials_file(self) -> Path:
        return Path(self.data_dir) / self.credentials_file_name

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: Type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> Tuple[PydanticBaseSettingsSource, ...]:
        """Earlier sources win: init kwargs, `VCW_*` environment variables, `.env`,
        `config.yaml`, then secret files.
        """
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            YamlConfigSettingsSource(settings_cls),
            file_secret_settings,
        )


settings = Settings()
