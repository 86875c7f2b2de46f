import logging

__version__ = "3.0.0"

logging.getLogger("scrapii").addHandler(logging.NullHandler())
