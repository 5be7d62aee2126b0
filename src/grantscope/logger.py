import logging

import coloredlogs

logger = logging.getLogger("grantscope")
logger_style = "%(asctime)s: [%(levelname)-8s] [%(module)s] %(message)s"
coloredlogs.install(level="WARNING", logger=logger, fmt=logger_style)

GLOBAL_LOGGER = logger
