import logging

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str = "INFO") -> None:
    # basicConfig is a no-op once handlers exist, so uvicorn's own setup wins when present.
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)
    logging.getLogger("funnel_analytics").setLevel(level.upper())
