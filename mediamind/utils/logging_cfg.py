import logging
import sys
from pathlib import Path

from loguru import logger

from mediamind.utils.env_cfg import LogConfig, load_log_env, load_path_env

CONSOLE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level:<8} | {name} | {message}"
FILE_FORMAT = (
    "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level:<8} | {name}:{function}:{line} | {message}"
)


def setup_logging(
    config: LogConfig | None = None,
    log_path: Path | None = None,
    encoding: str = "utf-8",
    diagnose: bool = False,
) -> Path:
    """
    Configure loguru sinks for the orchestrator.

    Replaces any existing sinks with a stderr sink at the configured level and a
    rotating DEBUG file sink. Standard-library loggers of the SDKs (HTTP request
    lines from httpx and similar) are capped at WARNING.

    Args:
        config (LogConfig | None, optional): Level, rotation and retention. Defaults to load_log_env().
        log_path (Path | None, optional): Log file. Defaults to LOG_PATH from load_path_env().
        encoding (str, optional): The log file encoding. Defaults to "utf-8".
        diagnose (bool, optional): Whether to include variable values in tracebacks. Defaults to False.

    Returns:
        Path: The path to the log file.
    """
    cfg = config or load_log_env()
    path = log_path or load_path_env().logs
    path.parent.mkdir(parents=True, exist_ok=True)

    for name in cfg.quiet_loggers:
        logging.getLogger(name).setLevel(logging.WARNING)

    logger.remove()
    logger.add(
        sink=sys.stderr,
        level=cfg.level,
        backtrace=False,
        diagnose=diagnose,
        format=CONSOLE_FORMAT,
    )
    logger.add(
        sink=path,
        rotation=cfg.rotation,
        retention=cfg.retention,
        encoding=encoding,
        level="DEBUG",
        backtrace=True,
        diagnose=diagnose,
        enqueue=True,
        format=FILE_FORMAT,
    )
    logger.debug("Logging to '{}' (console level {})", path, cfg.level)
    return path
