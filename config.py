import logging
import os
from typing import Dict, List, Literal, Mapping, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, ValidationError


PROVIDER_KEYS = {
    "openai": "OPENAI_API_KEY",
    "anthropic": "ANTHROPIC_API_KEY",
}


class ConfigError(ValueError):
    """Raised at startup when the environment is incomplete or invalid."""


class Settings(BaseModel):
    """
    Process configuration read from environment variables.
    """
    model_config = ConfigDict(protected_namespaces=())

    convex_url: str = Field(..., description="Convex deployment URL, e.g. https://xxx.convex.cloud")
    convex_deploy_key: str = Field(..., description="Admin deploy key used for Convex HTTP API auth.")
    convex_timeout: float = Field(30.0, gt=0, description="Timeout in seconds for Convex requests.")
    model_provider: Literal["openai", "anthropic"] = Field("openai", description="Chat model provider.")
    model_name: str = Field("gpt-4.1", description="Model used by the supervisor and sub-agents.")
    aux_model_name: Optional[str] = Field(
        None, description="Model used for titles and suggestions. Defaults to model_name."
    )
    checkpoint_db: str = Field("checkpoint.db", description="SQLite file holding thread checkpoints.")
    routing_mode: Literal["llm", "keyword"] = Field("llm", description="How the supervisor picks a sub-agent.")
    log_level: str = Field("INFO", description="Root logging level.")

    @property
    def auxiliary_model(self) -> str:
        return self.aux_model_name or self.model_name


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """
    Build Settings from the environment, failing fast on anything missing.

    A .env file in the working directory is loaded first unless an explicit
    mapping is given.
    """
    if environ is None:
        load_dotenv()
        environ = os.environ

    provider = (environ.get("MODEL_PROVIDER") or "openai").strip().lower()
    required = ["CONVEX_URL", "CONVEX_DEPLOY_KEY"]
    if provider in PROVIDER_KEYS:
        required.append(PROVIDER_KEYS[provider])
    missing = [name for name in required if not (environ.get(name) or "").strip()]
    if missing:
        raise ConfigError("Missing required environment variable(s): " + ", ".join(missing))

    values: Dict[str, str] = {
        "convex_url": environ["CONVEX_URL"].strip().rstrip("/"),
        "convex_deploy_key": environ["CONVEX_DEPLOY_KEY"].strip(),
        "model_provider": provider,
    }
    optional = {
        "CONVEX_TIMEOUT": "convex_timeout",
        "MODEL_NAME": "model_name",
        "AUX_MODEL_NAME": "aux_model_name",
        "CHECKPOINT_DB": "checkpoint_db",
        "ROUTING_MODE": "routing_mode",
        "LOG_LEVEL": "log_level",
    }
    for env_name, field_name in optional.items():
        value = (environ.get(env_name) or "").strip()
        if value:
            values[field_name] = value

    try:
        return Settings(**values)
    except ValidationError as exc:
        problems: List[str] = []
        for error in exc.errors():
            location = ".".join(str(part) for part in error["loc"])
            problems.append(f"{location}: {error['msg']}")
        raise ConfigError("Invalid configuration: " + "; ".join(problems)) from exc


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
