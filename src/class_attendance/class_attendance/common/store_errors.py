from __future__ import annotations

import logging
from contextlib import contextmanager

from ..core.exceptions import StoreError


@contextmanager
def store_operation(logger: logging.Logger, operation: str, context: str = ""):
    """Log store failures with enough context to replay the request, then re-raise."""
    try:
        yield
    except StoreError:
        logger.exception("store failure during %s %s", operation, context)
        raise
