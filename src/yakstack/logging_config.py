import sys
from pathlib import Path

from loguru import logger

from yakstack.settings import Settings

LOG_FILE_NAME = "yakstack.log"


def setup_logging(settings: Settings, *, log_to_file: bool = True) -> None:
    """
    Configure logging for the application.

    The console sink stays quiet by default so command output is not mixed
    with log lines. The file sink is the only place a detached reminder
    worker can report to, since it runs without standard streams.
    """

    # Remove default handler to avoid duplicate logs
    logger.remove()

    # Console handler
    logger.add(
        sys.stderr,
        level=settings.logging_level.upper(),
        format=settings.logging_format,
        colorize=False,
        backtrace=True,
        diagnose=False,
        catch=True,
    )

    if log_to_file:
        log_dir = Path(settings.app_data_dir)
        log_dir.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_dir / LOG_FILE_NAME,
            level=settings.logging_file_level.upper(),
            format=settings.logging_format,
            rotation=settings.logging_rotation,
            retention=settings.logging_retention,
            compression=settings.logging_compression,
            colorize=False,
            backtrace=True,
            diagnose=False,
            catch=True,
        )

    # Configure common context (can be overridden per module)
    logger.configure(extra={"app": settings.app_name, "version": settings.app_version})

    logger.debug(
        "Logging system initialized",
        log_level=settings.logging_level,
        log_to_file=log_to_file,
    )
