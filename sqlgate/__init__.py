"""Permission-gated SQL execution for MySQL and PostgreSQL."""

import logging

__version__ = "2.1.0"

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = ["__version__"]
