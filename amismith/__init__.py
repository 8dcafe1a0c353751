import os
import logging


class AmismithLoggingFormatter(logging.Formatter):

    verbose_fmt = "[%(name)s] %(levelname)s: %(asctime)s - %(message)s"
    info_fmt = "%(message)s"

    def format(self, record):
        if record.levelno == logging.INFO:
            tmpformatter = logging.Formatter(AmismithLoggingFormatter.info_fmt)
        else:
            tmpformatter = logging.Formatter(AmismithLoggingFormatter.verbose_fmt)
            tmpformatter.datefmt = '%y-%m-%d %H:%M:%S'
        return tmpformatter.format(record)


def debug_enabled():
    return os.environ.get('DEBUG', '') == 'true'


def create_logger(name='root'):
    logger = logging.getLogger(name)

    # configuring severity level
    if debug_enabled():
        logger.setLevel(logging.DEBUG)
    else:
        logger.setLevel(logging.INFO)

    # configuring format requires creating a handler first
    if not logger.handlers:
        log_handler = logging.StreamHandler()
        log_formatter = AmismithLoggingFormatter()
        log_handler.setFormatter(log_formatter)
        logger.addHandler(log_handler)

    return logger


def set_debug():
    """switch already created amismith loggers to DEBUG (used by --debug)"""
    os.environ['DEBUG'] = 'true'
    for name in list(logging.root.manager.loggerDict):
        if name == 'amismith' or name.startswith('amismith.'):
            logging.getLogger(name).setLevel(logging.DEBUG)
