import sys
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from loguru import logger

DEFAULT_LOG_PATH = str(Path.home() / ".pi" / "agent" / "logs" / "pi-extensions.log")

_CONSOLE_FORMAT = (
    "<level>{level:<8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level>"
)
_FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level:<8} | {name}:{function}:{line} - {message}"


def _module_filter(modules: list[str] | None):
    """Restrict a sink to records logged from the given module prefixes."""
    if not modules:
        return None
    prefixes = tuple(modules)
    return lambda record: record["name"].startswith(prefixes)


@runtime_checkable
class LogConsumer(Protocol):
    def register(self, level: str) -> None: ...
    def describe(self, level: str) -> str: ...


class ConsoleLogConsumer:
    # stderr only: stdout carries tool output
    def __init__(self, modules: list[str] | None = None):
        self._modules = modules

    def register(self, level: str) -> None:
        logger.add(sys.stderr, level=level, format=_CONSOLE_FORMAT, filter=_module_filter(self._modules))

    def describe(self, level: str) -> str:
        return f"console (stderr, {level})"


class FileLogConsumer:
    def __init__(
        self,
        path: str = DEFAULT_LOG_PATH,
        rotation: str = "10 MB",
        retention: int = 3,
        modules: list[str] | None = None,
    ):
        self._path = str(Path(path).expanduser())
        self._rotation = rotation
        self._retention = retention
        self._modules = modules

    def register(self, level: str) -> None:
        Path(self._path).parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            self._path,
            level=level,
            format=_FILE_FORMAT,
            rotation=self._rotation,
            retention=self._retention,
            filter=_module_filter(self._modules),
        )

    def describe(self, level: str) -> str:
        return f"file ({self._path}, {level})"


class JsonLogConsumer:
    """One JSON object per line, for feeding logs into other tooling."""

    def __init__(self, path: str, rotation: str = "10 MB", modules: list[str] | None = None):
        self._path = str(Path(path).expanduser())
        self._rotation = rotation
        self._modules = modules

    def register(self, level: str) -> None:
        Path(self._path).parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            self._path,
            level=level,
            serialize=True,
            rotation=self._rotation,
            filter=_module_filter(self._modules),
        )

    def describe(self, level: str) -> str:
        return f"json ({self._path}, {level})"


_CONSUMER_TYPES: dict[str, type] = {
    "console": ConsoleLogConsumer,
    "file": FileLogConsumer,
    "json": JsonLogConsumer,
}

_DEFAULT_CONSUMERS = [
    {"type": "console", "level": "WARNING"},
    {"type": "file"},
]


def setup_logging(
    level: str = "INFO",
    consumers: list[dict[str, Any]] | None = None,
) -> list[str]:
    """Configure logging sinks. Returns a description of each registered consumer."""
    logger.remove()

    if consumers is None:
        consumers = _DEFAULT_CONSUMERS

    descriptions: list[str] = []

    for config in consumers:
        sink_type = config.get("type", "")
        cls = _CONSUMER_TYPES.get(sink_type)
        if cls is None:
            logger.warning(f"Unknown log consumer type: {sink_type!r}")
            continue

        kwargs = {k: v for k, v in config.items() if k not in ("type", "level")}
        sink_level = config.get("level", level)

        try:
            consumer = cls(**kwargs)
        except TypeError as ex:
            logger.warning(f"Invalid options for log consumer {sink_type!r}: {ex}")
            continue
        consumer.register(sink_level)
        descriptions.append(consumer.describe(sink_level))

    return descriptions
