import logging

from codex_notify.config import NotifySettings

__all__ = ["configure_logging", "logger"]

logger = logging.getLogger("codex_notify")


def configure_logging(settings: NotifySettings) -> None:
    """Attach the file handler once per process.

    Hooks run detached from any terminal, so the log file under the cache
    directory is the only place their decisions are visible.
    """
    if logger.handlers:
        return
    level = logging.getLevelName(settings.log_level)
    logger.setLevel(level if isinstance(level, int) else logging.INFO)
    try:
        settings.cache_dir.mkdir(parents=True, exist_ok=True)
        handler: logging.Handler = logging.FileHandler(settings.log_file, encoding="utf-8")
    except OSError:
        handler = logging.NullHandler()
    handler.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    logger.addHandler(handler)
