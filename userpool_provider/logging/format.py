"""Tools for formatting provider logs."""
import logging
from functools import lru_cache

MAX_THREAD_NAME_LEN = 12
MAX_NAME_LEN = 26

LOG_FORMAT = f"%(asctime)s.%(msecs)03d %(short_level)5s --- [%(short_thread){MAX_THREAD_NAME_LEN}s] %(short_name)-{MAX_NAME_LEN}s : %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"

CUSTOM_LEVEL_NAMES = {
    50: "FATAL",
    40: "ERROR",
    30: "WARN",
    20: "INFO",
    10: "DEBUG",
}


class DefaultFormatter(logging.Formatter):
    """
    A formatter that uses ``LOG_FORMAT`` and ``LOG_DATE_FORMAT``.
    """

    def __init__(self, fmt=LOG_FORMAT, datefmt=LOG_DATE_FORMAT):
        super().__init__(fmt=fmt, datefmt=datefmt)


class AddFormattedAttributes(logging.Filter):
    """
    Filter that adds three attributes to a log record:

    - short_level: the abbreviated loglevel that's max 5 characters long
    - short_name: the abbreviated name of the logger (e.g., `u.services.cognito`), trimmed to ``MAX_NAME_LEN``
    - short_thread: the abbreviated thread name (prefix trimmed, .e.g, ``omeThread-108``)
    """

    max_name_len: int
    max_thread_len: int

    def __init__(self, max_name_len: int = None, max_thread_len: int = None):
        super().__init__()
        self.max_name_len = max_name_len or MAX_NAME_LEN
        self.max_thread_len = max_thread_len or MAX_THREAD_NAME_LEN

    def filter(self, record):
        record.short_level = CUSTOM_LEVEL_NAMES.get(record.levelno, record.levelname)
        record.short_name = self._get_compressed_logger_name(record.name)
        record.short_thread = record.threadName[-self.max_thread_len :]
        return True

    @lru_cache(maxsize=256)
    def _get_compressed_logger_name(self, name):
        return compress_logger_name(name, self.max_name_len)


def compress_logger_name(name: str, length: int) -> str:
    """
    Creates a short version of a logger name. For example ``my.very.long.logger.name`` with length=17 turns into
    ``m.v.l.logger.name``. Parts are expanded from the right as long as the result fits into ``length``.

    :param name: the logger name
    :param length: the max length of the logger name
    :return: the compressed name
    """
    if len(name) <= length:
        return name

    parts = list(reversed(name.split(".")))
    expanded = []

    # all parts collapsed to one character, plus the dots in between
    current_length = len(parts) * 2 - 1

    for index, part in enumerate(parts):
        next_length = current_length + len(part) - 1

        if next_length > length:
            expanded.extend(p[0] for p in parts[index:])
            if index == 0:
                # the last part alone does not fit, show as much of it as possible
                remaining = length - current_length
                if remaining > 0:
                    expanded[0] = part[: remaining + 1]
            break

        expanded.append(part)
        current_length = next_length

    return ".".join(reversed(expanded))
