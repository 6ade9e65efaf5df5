import logging


def setup_logger(name: str='zkcircuit', level=logging.INFO) -> logging.Logger:
    """
    Return a logger with a StreamHandler and a compact formatter. Idempotent.
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)
    if logger.handlers:
        return logger

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter('%(asctime)s %(levelname)s %(name)s: %(message)s', datefmt='%Y-%m-%d %H:%M:%S'))
    logger.addHandler(handler)
    return logger
