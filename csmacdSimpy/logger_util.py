import logging
import os

DEFAULT_LOG_NAME = 'csmacd'


def station_log(station, mes: str) -> None:
    logger = logging.getLogger(getattr(station, 'logger_name', DEFAULT_LOG_NAME))
    if logger.isEnabledFor(logging.INFO):
        logger.info(f"Time: {station.now} Station: {station.name} Message: {mes}")


def log(mes: str, log_name: str = DEFAULT_LOG_NAME) -> None:
    logging.getLogger(log_name).info(mes)


def enable_logging(log_name: str = DEFAULT_LOG_NAME, log_path: str = "") -> str:
    """Route one scenario's log records into ``<log_path>/<log_name>.log`` and return that path."""
    logger = logging.getLogger(log_name)
    # a scenario re-run must not write every line twice
    for handler in list(logger.handlers):
        if isinstance(handler, logging.FileHandler):
            logger.removeHandler(handler)
            handler.close()
    file_path = os.path.join(log_path, f'{log_name}.log')
    file_handler = logging.FileHandler(file_path, mode='w')
    file_handler.setLevel(logging.INFO)
    file_handler.setFormatter(logging.Formatter('%(asctime)s %(levelname)s %(message)s'))
    logger.setLevel(logging.INFO)
    logger.addHandler(file_handler)
    return file_path


def disable_logging(log_name: str = DEFAULT_LOG_NAME) -> None:
    logger = logging.getLogger(log_name)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.NOTSET)
