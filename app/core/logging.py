import logging

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Configure the root logger once for the API process."""
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)
    # requests/urllib3 are chatty at INFO about connection pooling.
    logging.getLogger("urllib3").setLevel(logging.WARNING)
