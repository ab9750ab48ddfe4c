"""Logging setup for the authorization server.

Every module logs through ``loguru``:

.. code-block:: python

    from loguru import logger as log

    log.debug("Client authenticated", details={"client_id": client.id})

Keyword arguments such as ``details`` land in the record's ``extra`` mapping,
which the sink below renders after the message. Messages passed together with
keyword arguments must not contain braces.
"""

import sys

from loguru import logger as log

from .constants import LOG_LEVEL

LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan> - <level>{message}</level> {extra}"
)

_configured = False


def configure_logging(level: str | None = None) -> None:
    """Replace loguru's default sink with one at the configured level.

    Safe to call more than once; only the first call installs the sink.
    """
    global _configured

    if _configured:
        return

    log.remove()
    log.add(sys.stderr, level=level or LOG_LEVEL, format=LOG_FORMAT, backtrace=False, diagnose=False)
    _configured = True
