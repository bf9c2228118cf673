import logging
from pathlib import Path
from typing import Optional

from productivity_tracker.config.settings import settings

def setup_logging(level: int = logging.INFO, log_dir: Optional[Path] = None):
    """Configure logging for the application"""
    log_dir = log_dir or settings.LOG_DIR
    log_dir.mkdir(parents=True, exist_ok=True)
    
    logging.basicConfig(
        level=logging.DEBUG if settings.DEBUG else level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.FileHandler(log_dir / "productivity_tracker.log"),
            logging.StreamHandler()  # Also log to console
        ]
    )
    
    logger = logging.getLogger(__name__)
    logger.debug("Logging initialized")
