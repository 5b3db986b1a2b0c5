import logging
import sys

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

# Third-party loggers that log every request at INFO
_NOISY_LOGGERS = ("httpx", "httpcore", "sqlalchemy.engine")


def configure_logging(level: str = "INFO") -> None:
	root = logging.getLogger()
	numeric = getattr(logging, str(level).upper(), logging.INFO)
	root.setLevel(numeric)
	# Idempotent: uvicorn reload and tests call this more than once
	if not any(getattr(h, "_hidrazy", False) for h in root.handlers):
		handler = logging.StreamHandler(sys.stdout)
		handler.setFormatter(logging.Formatter(LOG_FORMAT))
		handler._hidrazy = True
		root.addHandler(handler)
	for name in _NOISY_LOGGERS:
		logging.getLogger(name).setLevel(max(numeric, logging.WARNING))
