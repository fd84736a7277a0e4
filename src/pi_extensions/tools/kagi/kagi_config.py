import json
from dataclasses import asdict, dataclass
from pathlib import Path

from loguru import logger

from pi_extensions.errors import ExecutionTimeoutError, TokenCommandError
from pi_extensions.tools.process import run_shell

DEFAULT_CONFIG_PATH = Path.home() / ".config" / "kagi" / "config.json"
DEFAULT_PASSWORD_COMMAND = "rbw get kagi-session-link"
DEFAULT_TIMEOUT_SECONDS = 30


@dataclass
class KagiConfig:
    password_command: str = DEFAULT_PASSWORD_COMMAND
    timeout: float = DEFAULT_TIMEOUT_SECONDS


def load_config(path: str | Path | None = None) -> KagiConfig:
    """Load the Kagi config, writing one with the defaults first if none exists."""
    config_path = Path(path) if path else DEFAULT_CONFIG_PATH

    if not config_path.exists():
        config = KagiConfig()
        config_path.parent.mkdir(parents=True, exist_ok=True)
        config_path.write_text(json.dumps(asdict(config), indent=2))
        logger.info(f"Created default Kagi config at {config_path}")
        return config

    with open(config_path) as f:
        data = json.load(f)

    return KagiConfig(
        password_command=data.get("password_command") or DEFAULT_PASSWORD_COMMAND,
        timeout=float(data.get("timeout", DEFAULT_TIMEOUT_SECONDS)),
    )


def extract_token(output: str) -> str:
    """Pull ``token`` out of a session link like ``https://kagi.com/search?token=abc&q=``."""
    output = output.strip()
    if "token=" in output:
        return output.split("token=", 1)[1].split("&", 1)[0]
    return output


async def get_session_token(config: KagiConfig) -> str:
    """Run the password command without blocking the loop, bounded by ``config.timeout``."""
    try:
        result = await run_shell(config.password_command, timeout=config.timeout)
    except ExecutionTimeoutError as ex:
        raise TokenCommandError(
            f"password command timed out after {config.timeout:g}s ({config.password_command})"
        ) from ex
    except OSError as ex:
        raise TokenCommandError(f"password command failed ({config.password_command}): {ex}") from ex

    if result.returncode != 0:
        detail = result.stderr.strip() or f"exit code {result.returncode}"
        raise TokenCommandError(f"password command failed ({config.password_command}): {detail}")

    return extract_token(result.stdout)
