# Console logging with a level-coloured formatter.
import logging

LOG_FORMAT = '[%(levelname)s] %(asctime)s %(name)s - %(message)s'

RESET = "\x1b[0m"
LEVEL_COLOURS = {
    logging.DEBUG: "\x1b[30;1m",
    logging.INFO: "\x1b[37;20m",
    logging.WARNING: "\x1b[33;20m",
    logging.ERROR: "\x1b[31;20m",
    logging.CRITICAL: "\x1b[31;1m",
}


class ColourFormatter(logging.Formatter):
    """Formats records with LOG_FORMAT, wrapped in the ANSI colour of their level."""

    def __init__(self, fmt=LOG_FORMAT, use_colour=True):
        super().__init__(fmt)
        self._plain = logging.Formatter(fmt)
        self._by_level = {
            level: logging.Formatter(colour + fmt + RESET) if use_colour else self._plain
            for level, colour in LEVEL_COLOURS.items()
        }

    def format(self, record):
        return self._by_level.get(record.levelno, self._plain).format(record)


def setup_logging(level='INFO'):
    """
    Attach the coloured console handler to the root logger.

    Safe to call more than once (each app factory call does); the handler
    is only installed the first time.

    Args:
        level: Level name or number applied to the root logger.

    Returns:
        logging.Logger: The configured root logger.
    """
    root = logging.getLogger()
    root.setLevel(level)

    if not any(isinstance(h.formatter, ColourFormatter) for h in root.handlers):
        ch = logging.StreamHandler()
        ch.setLevel(logging.DEBUG)
        ch.setFormatter(ColourFormatter())
        root.addHandler(ch)

    return root
