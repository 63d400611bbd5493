import logging

import uvicorn

from trainer_booking.core import config
from trainer_booking.core.logging_config import configure_logging

logger = logging.getLogger(__name__)


def main() -> None:
    configure_logging()
    config.validate_runtime_config()
    logger.info(config.describe_config())

    # One worker: the memory backend and the in-process booking locks are per process.
    logger.info('Starting server on %s:%s', config.APP_HOST, config.APP_PORT)
    uvicorn.run('trainer_booking.main:app', host=config.APP_HOST, port=config.APP_PORT, log_config=None)


if __name__ == '__main__':
    main()
