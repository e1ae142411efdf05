import logging
import sys

_logging_configured = False

LOG_FORMAT = '[%(asctime)s] %(levelname)s in %(module)s: %(message)s'


def setup_logging(debug: bool = False):
    """Configure the root handler once; only the CLI should call this."""
    global _logging_configured
    level = logging.DEBUG if debug else logging.WARNING
    if _logging_configured:
        logging.getLogger().setLevel(level)
        return

    logging.basicConfig(level=level, format=LOG_FORMAT, stream=sys.stderr, force=True)

    # requests/urllib3 are chatty at DEBUG
    logging.getLogger('urllib3').setLevel(logging.WARNING)

    _logging_configured = True


def get_logger(name: str):
    """Get a named logger.

    Args:
        name: Logger name (typically __name__)
    """
    return logging.getLogger(name)
