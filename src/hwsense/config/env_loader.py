"""Environment variable file loader with priority-based loading."""

from enum import Enum
from pathlib import Path

from dotenv import load_dotenv

from hwsense.telemetry import get_logger

log = get_logger(__name__)


class Environment(str, Enum):
    """Application environment types."""

    DEVELOPMENT = "development"
    PRODUCTION = "production"
    TEST = "test"


def get_environment() -> Environment:
    """Detect current environment from the HWSENSE_ENV environment variable.

    Returns:
        Environment enum value.

    Environment variable mapping:
    - "production" or "prod" → Environment.PRODUCTION
    - "test" → Environment.TEST
    - Default → Environment.DEVELOPMENT

    Note: This function uses os.getenv() directly because environment
    detection must happen before settings are loaded.
    """
    import os  # noqa: PLC0415

    app_env = os.getenv("HWSENSE_ENV", "").lower()

    if app_env in ("production", "prod"):
        return Environment.PRODUCTION
    elif app_env == "test":
        return Environment.TEST
    else:
        return Environment.DEVELOPMENT


def load_env_files(base_dir: Path | None = None) -> list[Path]:
    """Load .env files in priority order.

    Priority order (highest to lowest):
    1. `.env.{environment}.local`
    2. `.env.{environment}`
    3. `.env.local`
    4. `.env`

    Explicit environment variables always win over file contents.

    Args:
        base_dir: Directory to look for .env files in. Defaults to the
            current working directory.

    Returns:
        The files that were loaded, lowest priority first.
    """
    if base_dir is None:
        base_dir = Path.cwd()

    env_name = get_environment().value

    # load_dotenv(override=False) keeps the first value it sees, so the
    # highest-priority file has to be loaded first.
    env_files = [
        base_dir / f".env.{env_name}.local",
        base_dir / f".env.{env_name}",
        base_dir / ".env.local",
        base_dir / ".env",
    ]

    loaded_files = []
    for env_file in env_files:
        if env_file.exists():
            load_dotenv(env_file, override=False)
            loaded_files.append(env_file)

    if loaded_files:
        log.info(
            "env_files_loaded",
            environment=env_name,
            files=[str(f) for f in loaded_files],
        )
    else:
        log.debug("no_env_files_found", environment=env_name, base_dir=str(base_dir))

    loaded_files.reverse()
    return loaded_files
