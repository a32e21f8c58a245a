import datetime
import importlib.resources
import logging
import logging.config
import os
import sys
import types
from typing import Optional, Union

import pythonjsonlogger.json
import pytz
import yaml

try:
    import curses
except ImportError:
    curses = None  # type: ignore # Mypy doesn't handle Optional imports like this well


# Attributes set through `extra=` by the client, rendered as tags by the pretty formatter.
ETCD_LOG_TAGS = ['etcd.method', 'etcd.path']


def _stderr_supports_color():
    color = False
    if curses and sys.stderr.isatty():
        # noinspection PyBroadException
        try:
            curses.setupterm()
            if curses.tigetnum('colors') > 0:
                color = True
        except Exception:
            pass
    return color


class PrettyLogFormatter(logging.Formatter):
    """Human readable log formatter.

    * Color support when logging to a terminal that supports it.
    * UTC timestamps on every log line.
    * etcd request tags (`etcd.method`, `etcd.path`) when the record carries them.
    """

    def __init__(self, color=True, *args, **kwargs):
        logging.Formatter.__init__(self, *args, **kwargs)
        self._color = color and _stderr_supports_color()
        if self._color:
            fg_color = curses.tigetstr('setaf') or curses.tigetstr('setf') or ''
            self._colors = {
                logging.DEBUG: str(curses.tparm(fg_color, 4), 'ascii'),  # Blue
                logging.INFO: str(curses.tparm(fg_color, 2), 'ascii'),  # Green
                logging.WARNING: str(curses.tparm(fg_color, 3), 'ascii'),  # Yellow
                logging.ERROR: str(curses.tparm(fg_color, 1), 'ascii'),  # Red
            }
            self._normal = str(curses.tigetstr('sgr0'), 'ascii')

    def format(self, record):
        try:
            record.message = record.getMessage()
        except Exception as e:
            record.message = f'Bad message ({e!r}): {record.__dict__!r}'
        record.asctime = datetime.datetime.fromtimestamp(record.created, pytz.UTC).strftime('%y%m%d %H:%M:%S.%f')
        prefix = '[%(levelname)1.1s %(asctime)s %(module)s:%(lineno)d]' % record.__dict__

        if self._color:
            prefix = self._colors.get(record.levelno, self._normal) + prefix + self._normal

        log_tags = []
        for tag_name in ETCD_LOG_TAGS:
            tag = getattr(record, tag_name, None)
            if tag:
                log_tags.append('{}={}'.format(tag_name, tag))
        if log_tags:
            prefix += ' [' + ' '.join(log_tags) + ']'

        formatted = prefix + ' ' + record.message
        if record.exc_info:
            if not record.exc_text:
                record.exc_text = self.formatException(record.exc_info)
        if record.exc_text:
            formatted = formatted.rstrip() + '\n' + record.exc_text
        return formatted.replace('\n', '\n    ')


class JsonLogFormatter(pythonjsonlogger.json.JsonFormatter):  # type: ignore
    """JSON log formatter with millisecond precision UTC `asctime`s."""

    def formatTime(self, record: logging.LogRecord, datefmt: Optional[str] = None) -> str:
        dt = datetime.datetime.fromtimestamp(record.created, tz=pytz.UTC)
        if datefmt:
            return dt.strftime(datefmt)
        return '%s.%03d' % (dt.strftime(self.default_time_format), record.msecs)


def _remove_handlers_except(name: str, logger: logging.Logger) -> None:
    """Remove all handlers from the given logger except for the handler with the given name.

    Raises ValueError if no handler with the given name is found on the given logger.
    """
    handlers = {handler.name: handler for handler in logger.handlers}
    if name not in handlers:
        raise ValueError(f"Log handler '{name}' not found on logger '{logger.name}'; found {list(handlers.keys())}")

    for handler in list(logger.handlers):
        if handler.name != name:
            logger.removeHandler(handler)


def configure_logging(
    package: Union[types.ModuleType, str] = 'etcdkeys.etcd_logging',
    handler_name: Optional[str] = 'pretty_stderr',
) -> None:
    """Apply the `logging.yaml` configuration shipped within the given package. If a handler name is given, or is
    overridden via the ETCDKEYS_PYTHON_LOG_HANDLER environment variable, remove all other handlers from the root
    logger.

    NOTE: This reconfigures every log of the process, call it from the top of your application's call stack only.
    """
    config_yaml = importlib.resources.files(package).joinpath('logging.yaml').read_text()
    configuration = yaml.safe_load(config_yaml)
    logging.config.dictConfig(configuration)

    root_logger = logging.getLogger()
    handler_name = os.environ.get('ETCDKEYS_PYTHON_LOG_HANDLER', handler_name)
    if handler_name is not None:
        _remove_handlers_except(handler_name, root_logger)


def enable_pretty_logging(logger=None, log_level='info'):
    if logger is None:
        logger = logging.getLogger()
    if any(isinstance(h.formatter, PrettyLogFormatter) for h in logger.handlers):
        return
    logger.setLevel(logging.getLevelName(log_level.upper()))
    channel = logging.StreamHandler()
    channel.setFormatter(PrettyLogFormatter())
    logger.addHandler(channel)

