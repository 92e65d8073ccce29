"""
Настройка логирования бота и webhook-сервера.

Консоль получает короткий формат, файл logs/app.log — полный (с ротацией).
Общий объём архивов ограничен MAX_TOTAL_SIZE.
"""

from __future__ import annotations

import logging
import logging.config
from pathlib import Path

LOG_DIR = Path("logs")
LOG_FILE = LOG_DIR / "app.log"
LOG_FILE_SIZE = 5 * 1024 * 1024  # 5 МБ на файл
LOG_BACKUP_COUNT = 10
MAX_TOTAL_SIZE = 50 * 1024 * 1024  # 50 МБ на все файлы логов

# Сторонние логгеры, которые на уровне INFO пишут каждый запрос
QUIET_LOGGERS = {
    "aiohttp.access": ["console", "file"],
    "httpx": ["file"],
    "httpcore": ["file"],
}


class SuppressHealthCheckFilter(logging.Filter):
    """Убирает из логов запросы мониторинга к /health."""

    def filter(self, record: logging.LogRecord) -> bool:  # type: ignore[override]
        try:
            message = record.getMessage()
        except (TypeError, ValueError):
            return True
        return "/health" not in message


def setup_logging(level: str = "INFO", log_dir: Path = LOG_DIR) -> None:
    log_dir.mkdir(parents=True, exist_ok=True)
    level = level.upper()

    loggers = {
        name: {"handlers": handlers, "level": "WARNING", "propagate": False}
        for name, handlers in QUIET_LOGGERS.items()
    }
    # aiogram.event логирует каждое обработанное обновление
    loggers["aiogram.event"] = {"handlers": ["console", "file"], "level": level, "propagate": False}

    logging.config.dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "filters": {"no_health": {"()": SuppressHealthCheckFilter}},
        "formatters": {
            "full": {"format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s"},
            "short": {"format": "%(levelname)s: %(message)s"},
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": level,
                "formatter": "short",
                "filters": ["no_health"],
            },
            "file": {
                "class": "logging.handlers.RotatingFileHandler",
                "level": "DEBUG",
                "formatter": "full",
                "filename": str(log_dir / LOG_FILE.name),
                "maxBytes": LOG_FILE_SIZE,
                "backupCount": LOG_BACKUP_COUNT,
                "encoding": "utf-8",
                "delay": True,
                "filters": ["no_health"],
            },
        },
        "root": {"handlers": ["console", "file"], "level": level},
        "loggers": loggers,
    })
    prune_logs(log_dir)


def prune_logs(log_dir: Path = LOG_DIR, max_total_size: int = MAX_TOTAL_SIZE) -> list[Path]:
    """
    Удаляет самые старые архивы app.log.N, пока общий объём больше лимита.

    Текущий app.log не удаляется никогда.

    Returns:
        list[Path]: удалённые файлы
    """
    current = log_dir / LOG_FILE.name
    archives = sorted(
        (path for path in log_dir.glob(f"{LOG_FILE.name}.*") if path.is_file()),
        key=lambda path: path.stat().st_mtime,
    )
    total = sum(path.stat().st_size for path in archives)
    if current.exists():
        total += current.stat().st_size

    removed: list[Path] = []
    while archives and total > max_total_size:
        oldest = archives.pop(0)
        total -= oldest.stat().st_size
        oldest.unlink(missing_ok=True)
        removed.append(oldest)
    return removed
