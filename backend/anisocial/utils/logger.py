import logging

from anisocial.core.config import settings

logger = logging.getLogger("anisocial")
logger.setLevel(getattr(logging, settings.log_level.upper(), logging.INFO))

console_handler = logging.StreamHandler()
formatter = logging.Formatter("[%(levelname)s] %(asctime)s - %(message)s", "%Y-%m-%d %H:%M:%S")
console_handler.setFormatter(formatter)
logger.addHandler(console_handler)
