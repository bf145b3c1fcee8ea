"""
Logging configuration for FundingArb Bot.

Features:
- Separate log file for published opportunities
- Rotating file handlers (max 20MB per file, keep 5 backups)
- Automatic cleanup of old logs (keeps last 7 days)
- Console output for real-time monitoring
"""
import glob
import logging
import logging.handlers
from datetime import datetime, timedelta
from pathlib import Path
from typing import Dict, Optional

from core.models import Opportunity

LOG_DIR = Path("logs")

SYSTEM_LOG = "system.log"
OPPORTUNITIES_LOG = "opportunities.log"
ERRORS_LOG = "errors.log"

OPPORTUNITIES_LOGGER = "opportunities"

# Rotation settings
MAX_BYTES = 20 * 1024 * 1024  # 20 MB per file
BACKUP_COUNT = 5

LOG_RETENTION_DAYS = 7


def _rotating_handler(path: Path, level: int, formatter: logging.Formatter) -> logging.Handler:
    handler = logging.handlers.RotatingFileHandler(
        path,
        maxBytes=MAX_BYTES,
        backupCount=BACKUP_COUNT,
        encoding='utf-8'
    )
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def setup_logging(log_level: str = "INFO", log_dir: Optional[Path] = None) -> Dict[str, logging.Logger]:
    """
    Configure logging with rotation and cleanup.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_dir: Directory for log files (defaults to ./logs)

    Returns:
        dict: Dictionary of specialized loggers
    """
    log_dir = Path(log_dir) if log_dir else LOG_DIR
    log_dir.mkdir(parents=True, exist_ok=True)

    level = getattr(logging, log_level.upper(), logging.INFO)

    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)

    # Root logger (catches all logs)
    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()
    root_logger.addHandler(console_handler)
    root_logger.addHandler(_rotating_handler(log_dir / SYSTEM_LOG, level, formatter))
    # Errors only, easier to monitor
    root_logger.addHandler(_rotating_handler(log_dir / ERRORS_LOG, logging.ERROR, formatter))

    opportunities_logger = logging.getLogger(OPPORTUNITIES_LOGGER)
    opportunities_logger.handlers.clear()
    opportunities_logger.addHandler(_rotating_handler(log_dir / OPPORTUNITIES_LOG, logging.INFO, formatter))
    opportunities_logger.propagate = True  # Also log to root (console + system)

    cleanup_old_logs(log_dir)

    root_logger.info("=" * 80)
    root_logger.info("FundingArb Bot logging system initialized")
    root_logger.info(f"Log directory: {log_dir.absolute()}")
    root_logger.info(f"Log level: {log_level}")
    root_logger.info(f"Rotation: {MAX_BYTES // (1024*1024)} MB per file, {BACKUP_COUNT} backups")
    root_logger.info(f"Retention: {LOG_RETENTION_DAYS} days")
    root_logger.info("=" * 80)

    return {
        'system': root_logger,
        'opportunities': opportunities_logger,
    }


def cleanup_old_logs(log_dir: Optional[Path] = None) -> int:
    """
    Delete log files older than LOG_RETENTION_DAYS.

    Returns:
        Number of deleted files
    """
    log_dir = Path(log_dir) if log_dir else LOG_DIR
    cutoff_time = datetime.now() - timedelta(days=LOG_RETENTION_DAYS)
    deleted_count = 0
    total_size_freed = 0

    # Current logs and their rotated backups (.log.1, .log.2, ...)
    for pattern in (log_dir / "*.log", log_dir / "*.log.*"):
        for log_file in glob.glob(str(pattern)):
            log_path = Path(log_file)
            if not log_path.exists():
                continue

            try:
                mtime = datetime.fromtimestamp(log_path.stat().st_mtime)
                if mtime < cutoff_time:
                    file_size = log_path.stat().st_size
                    log_path.unlink()
                    deleted_count += 1
                    total_size_freed += file_size
            except OSError as e:
                logging.error(f"Error cleaning up {log_path}: {e}")

    if deleted_count > 0:
        size_mb = total_size_freed / (1024 * 1024)
        logging.info(f"Cleaned up {deleted_count} old log files ({size_mb:.2f} MB freed)")
    return deleted_count


def log_opportunity(opportunity: Opportunity):
    """Log a published opportunity to the dedicated opportunities log."""
    logger = logging.getLogger(OPPORTUNITIES_LOGGER)
    logger.info(
        f"{opportunity.ticker} long={opportunity.long_exchange.value} short={opportunity.short_exchange.value} "
        f"spread={opportunity.spread_percent:.4f}% apr={opportunity.estimated_apr_percent:.2f}% "
        f"[{opportunity.confidence.value}]"
    )
