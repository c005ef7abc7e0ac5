"""Logging bootstrap shared by services, with optional CloudWatch shipping."""

from __future__ import annotations

import logging
import os
from typing import Optional, Union

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _resolve_level(level: Optional[Union[str, int]]) -> int:
    if level is None:
        level = os.environ.get("LOG_LEVEL", "INFO")
    if isinstance(level, int):
        return level
    if level.isdigit():
        return int(level)
    resolved = logging.getLevelName(level.upper())
    return resolved if isinstance(resolved, int) else logging.INFO


def setup_logging(service_name: str, level: Optional[Union[str, int]] = None) -> None:
    """Configure the root logger for a service process.

    Args:
        service_name: Name of the service, used as the CloudWatch stream name
            (e.g., "realtime").
        level: Level name or number. Falls back to LOG_LEVEL, then INFO.

    Environment variables:
        LOG_LEVEL: Default log level when ``level`` is not given
        ENABLE_CLOUDWATCH: Set to "true" to enable CloudWatch logging
        CLOUDWATCH_LOG_GROUP: Log group name (default: "chatterbox")
    """
    log_group = os.environ.get("CLOUDWATCH_LOG_GROUP", "chatterbox")

    logger = logging.getLogger()
    logger.setLevel(_resolve_level(level))

    # Clear any existing handlers
    logger.handlers.clear()

    console = logging.StreamHandler()
    console.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(console)

    if os.environ.get("ENABLE_CLOUDWATCH", "").lower() == "true":
        try:
            import watchtower

            cw_handler = watchtower.CloudWatchLogHandler(
                log_group_name=log_group,
                log_stream_name=service_name,
                use_queues=True,
                create_log_group=True,
            )
            cw_handler.setFormatter(logging.Formatter(LOG_FORMAT))
            logger.addHandler(cw_handler)
            logger.info(
                "CloudWatch logging enabled: group=%s, stream=%s",
                log_group,
                service_name,
            )
        except ImportError:
            logger.warning("watchtower not installed, CloudWatch logging disabled")
        except Exception as e:
            logger.warning("Failed to initialize CloudWatch logging: %s", e)
