import logging

from crowdstack.core.config import settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def setup_logging(level: str | None = None) -> None:
    """Configure the root logger once; later calls only adjust the level."""
    lvl = (level or settings.LOG_LEVEL or "INFO").upper()
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(level=lvl, format=LOG_FORMAT)
    root.setLevel(lvl)
    logging.getLogger("crowdstack").setLevel(lvl)
