"""
Loguru sink configuration.
The application logs through loguru everywhere; this only decides how verbose the
stderr sink is. Levels follow the LOG_LEVEL setting: debug, info, or error.
"""

import sys

# Console logging
from loguru import logger  # console logger

# LOG_LEVEL value -> loguru level name
LEVELS = {
	'debug': 'DEBUG',
	'info': 'INFO',  # warnings included
	'error': 'ERROR',
}


def configure_logging(level: str = 'info') -> int:
	"""Replace the default sink with a stderr sink at level; returns the new sink id."""
	name = LEVELS.get((level or 'info').strip().lower())
	if name is None:
		raise ValueError(f"Unknown log level: {level}")
	logger.remove()  # drop loguru's default DEBUG sink
	sink_id = logger.add(sys.stderr, level=name)
	logger.debug(f"[Logging] stderr sink at {name}")
	return sink_id
