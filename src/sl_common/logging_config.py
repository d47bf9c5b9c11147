"""Process-wide logging setup, called once from the FastAPI lifespan."""

import logging

_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Configure the root logger; module loggers use logging.getLogger(__name__)."""
    logging.basicConfig(level=level.upper(), format=_FORMAT)
    # SQL echo is controlled by settings.DEBUG on the engine, keep it out of INFO
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
