"""
Utility functions for slidepack
"""

import logging
import os
import subprocess
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)


def setup_logger(name: str = "slidepack", level: str = "INFO", log_dir: Optional[str] = None) -> logging.Logger:
    """
    Setup and configure logger

    Args:
        name: Name of the logger
        level: Logging level name (DEBUG, INFO, ...)
        log_dir: Optional directory for a daily log file

    Returns:
        Configured logger instance
    """
    log_level = getattr(logging, str(level).upper(), logging.INFO)

    # Create logger
    log = logging.getLogger(name)
    log.setLevel(log_level)

    # Remove existing handlers
    if log.handlers:
        log.handlers.clear()

    # Console handler
    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)
    console_handler.setFormatter(logging.Formatter('%(levelname)s - %(message)s'))
    log.addHandler(console_handler)

    # File handler
    if log_dir:
        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)
        log_file = log_path / f"slidepack_{datetime.now().strftime('%Y%m%d')}.log"
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(log_level)
        file_handler.setFormatter(
            logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
        )
        log.addHandler(file_handler)

    return log


def format_size(bytes_size: float) -> str:
    """
    Format bytes to human-readable size

    Args:
        bytes_size: Size in bytes

    Returns:
        Formatted size string
    """
    for unit in ['B', 'KB', 'MB', 'GB']:
        if bytes_size < 1024.0:
            return f"{bytes_size:.2f} {unit}"
        bytes_size /= 1024.0
    return f"{bytes_size:.2f} TB"


def open_file(path) -> None:
    """Open a file with the operating system's default application"""
    filepath = str(path)
    logger.info(f"📂 Opening {filepath}")
    if sys.platform.startswith('win'):
        os.startfile(filepath)
    elif sys.platform == 'darwin':
        subprocess.Popen(['open', filepath])
    else:
        subprocess.Popen(['xdg-open', filepath])
