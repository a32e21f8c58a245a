from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from etcdkeys.config import Config


def logging_callback(config: 'Config') -> None:
    """
    Apply the packaged logging configuration if the `ETCD_CONFIGURE_LOGGING` environment variable is set
    """
    if config.get_bool('ETCD_CONFIGURE_LOGGING', False):
        from etcdkeys.etcd_logging import configure_logging

        configure_logging(handler_name=config.get_str('ETCDKEYS_PYTHON_LOG_HANDLER', 'pretty_stderr'))
