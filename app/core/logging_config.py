import logging


def setup_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    # multipart parser logs every form field at DEBUG
    logging.getLogger("python_multipart").setLevel(logging.WARNING)
