import logging
import sys
import warnings

from userpool_provider import config, constants

from .format import AddFormattedAttributes, DefaultFormatter

LOG = logging.getLogger(__name__)

# The log levels for third-party modules are fixed, independent of the provider log level,
# since boto's wire-level debug output drowns the provider's own request logs.

default_log_levels = {
    "boto3": logging.INFO,
    "botocore": logging.ERROR,
    "s3transfer": logging.INFO,
    "urllib3": logging.WARNING,
    "plux": logging.WARNING,
    "moto": logging.WARNING,
}

trace_log_levels = {
    "botocore": logging.DEBUG,
    "urllib3": logging.DEBUG,
}


def get_log_level_from_config():
    # overriding the log level if PROVIDER_LOG has been set
    if config.PROVIDER_LOG:
        log_level = str(config.PROVIDER_LOG).upper()
        if log_level.lower() in constants.TRACE_LOG_LEVELS:
            log_level = "DEBUG"
        log_level = logging._nameToLevel[log_level]
        return log_level

    return logging.DEBUG if config.DEBUG else logging.INFO


def setup_logging_from_config():
    log_level = get_log_level_from_config()
    setup_logging(log_level)

    if config.is_trace_logging_enabled():
        for name, level in trace_log_levels.items():
            logging.getLogger(name).setLevel(level)

    LOG.debug("Provider configuration: %s", dict(config.collect_config_items()))


def create_default_handler(log_level: int):
    log_handler = logging.StreamHandler(stream=sys.stderr)
    log_handler.setLevel(log_level)
    log_handler.setFormatter(DefaultFormatter())
    log_handler.addFilter(AddFormattedAttributes())
    return log_handler


def setup_logging(log_level=logging.INFO) -> None:
    """
    Configures the python logging environment for the resource providers.

    :param log_level: the optional log level.
    """
    # create a default handler for the root logger (basically logging.basicConfig but explicit)
    log_handler = create_default_handler(log_level)

    # replace any existing handlers
    logging.basicConfig(level=log_level, handlers=[log_handler], force=True)

    # route warnings through logging
    warnings.filterwarnings("default")
    logging.captureWarnings(True)

    # set log levels of loggers
    logging.root.setLevel(log_level)
    logging.getLogger("userpool_provider").setLevel(log_level)
    for logger, level in default_log_levels.items():
        logging.getLogger(logger).setLevel(level)
