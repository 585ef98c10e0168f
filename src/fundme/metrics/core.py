"""Prometheus exporter startup for fundme.

The exporter is optional: a port that cannot be bound is logged and the
ledger keeps running without an HTTP endpoint.
"""

import logging
import os
from typing import Optional

from prometheus_client import start_http_server


logger = logging.getLogger("fundme.metrics")


def start_server_safe(port: Optional[int]) -> Optional[int]:
    """Start the metrics endpoint on `port`; return the port or None.

    `port` of None or 0 disables the exporter, as does DISABLE_PROMETHEUS=1.
    """
    if not port or os.getenv("DISABLE_PROMETHEUS", "0") == "1":
        logger.info("Prometheus exporter disabled")
        return None
    try:
        start_http_server(int(port))
    except OSError as e:
        logger.warning(f"Failed to start Prometheus server on :{port}: {e}")
        return None
    logger.info(f"Prometheus metrics server started on :{port}")
    return int(port)
