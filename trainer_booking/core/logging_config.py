import logging
import sys

import structlog

from trainer_booking.core import config

LOG_LEVELS = {
    'DEBUG': logging.DEBUG,
    'INFO': logging.INFO,
    'WARN': logging.WARNING,
    'WARNING': logging.WARNING,
    'ERROR': logging.ERROR,
}

LOG_FORMATS = {'text', 'json'}


def parse_log_level(value: str | None, default: int = logging.INFO) -> int:
    if not value:
        return default
    return LOG_LEVELS.get(value.strip().upper(), default)


def parse_log_format(value: str | None, default: str = 'text') -> str:
    if not value:
        return default
    normalized = value.strip().lower()
    return normalized if normalized in LOG_FORMATS else default


def add_service_fields(logger, method_name: str, event_dict: dict) -> dict:
    event_dict.setdefault('service', config.SERVICE_NAME)
    event_dict.setdefault('version', config.SERVICE_VERSION)
    event_dict.setdefault('commit_sha', config.COMMIT_SHA)
    return event_dict


def build_json_formatter(add_source: bool = False) -> logging.Formatter:
    """JSON lines for records emitted through standard library loggers."""
    pre_chain = [
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        add_service_fields,
    ]
    if add_source:
        pre_chain.append(
            structlog.processors.CallsiteParameterAdder(
                [
                    structlog.processors.CallsiteParameter.PATHNAME,
                    structlog.processors.CallsiteParameter.LINENO,
                ]
            )
        )

    return structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=pre_chain,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
    )


def build_text_formatter(add_source: bool = False) -> logging.Formatter:
    fields = [
        '%(asctime)s',
        '%(levelname)s',
        '%(name)s',
        f'service={config.SERVICE_NAME}',
        f'version={config.SERVICE_VERSION}',
        f'commit_sha={config.COMMIT_SHA}',
    ]
    if add_source:
        fields.append('source=%(pathname)s:%(lineno)d')
    fields.append('%(message)s')
    return logging.Formatter(' '.join(fields))


def configure_logging(
    level: str | None = None,
    add_source: bool | None = None,
    log_format: str | None = None,
) -> None:
    add_source = config.LOG_SOURCE if add_source is None else add_source

    if parse_log_format(log_format or config.LOG_FORMAT) == 'json':
        formatter = build_json_formatter(add_source)
    else:
        formatter = build_text_formatter(add_source)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    logging.basicConfig(
        level=parse_log_level(level or config.LOG_LEVEL),
        handlers=[handler],
        force=True,
    )
