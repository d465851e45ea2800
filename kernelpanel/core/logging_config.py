import logging

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=LOG_FORMAT)
    # uvicorn access lines duplicate the audit trail
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
