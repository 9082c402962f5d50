"""Configuration management with YAML and environment variables."""
import os
from pathlib import Path
from typing import Optional, List
import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings


class TmdbConfig(BaseModel):
    api_key: str
    url: str = "https://api.themoviedb.org/3"
    language: str = "en"
    timeout: float = 30.0


class RequestsConfig(BaseModel):
    page_size: int = 20


class UserSeed(BaseModel):
    email: str
    username: Optional[str] = None
    api_key: str
    permissions: List[str] = Field(default_factory=list)  # noms de Permission, ex: ["REQUEST"]


class AppConfig(BaseModel):
    data_dir: str = "/data"
    log_level: str = "INFO"


class Config(BaseSettings):
    tmdb: Optional[TmdbConfig] = None
    requests: RequestsConfig = Field(default_factory=RequestsConfig)
    app: AppConfig = Field(default_factory=AppConfig)
    users: List[UserSeed] = Field(default_factory=list)

    class Config:
        env_file = ".env"
        env_nested_delimiter = "__"

    @classmethod
    def load_from_yaml(cls, yaml_path: str) -> "Config":
        """Load configuration from YAML file, override with env vars."""
        config_path = Path(yaml_path)
        if not config_path.exists():
            raise FileNotFoundError(
                f"Config file not found: {yaml_path}\n"
                f"Please create config/config.yaml from config.example.yaml\n"
                f"Make sure the volume is mounted: -v ./config:/config:ro"
            )

        with open(config_path, "r", encoding="utf-8") as f:
            yaml_data = yaml.safe_load(f) or {}

        # Override with environment variables (TMDB__API_KEY, APP__LOG_LEVEL, ...)
        for key in ["tmdb", "requests", "app"]:
            section = yaml_data.get(key)
            if not isinstance(section, dict):
                continue
            for subkey in list(section.keys()):
                env_value = os.getenv(f"{key.upper()}__{subkey.upper()}")
                if env_value:
                    section[subkey] = env_value

        return cls(**yaml_data)


# Global config instance (will be initialized in main.py)
config: Optional[Config] = None


def get_config() -> Config:
    """Get the global config instance."""
    if config is None:
        raise RuntimeError("Config not initialized. Call init_config() first.")
    return config


def init_config(config_path: Optional[str] = None) -> Config:
    """Initialize global config from YAML file, or from env vars alone when no file is given."""
    global config
    if config_path:
        config = Config.load_from_yaml(config_path)
    else:
        config = Config()
    return config
