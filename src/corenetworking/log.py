# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Logging helpers for corenetworking."""

from __future__ import annotations

import logging
import os


def default_log_level() -> str:
    """Resolve the log level from the environment (evaluated at call time)."""
    return (os.getenv("CORENETWORKING_LOG_LEVEL") or os.getenv("LOG_LEVEL") or "WARNING").upper()


def setup_logging(level: str | None = None) -> None:
    """Configure standard logging for CLI/library use."""
    effective_level = (level or default_log_level()).upper()
    logging.basicConfig(
        level=getattr(logging, effective_level, logging.WARNING),
        format="%(levelname)s %(name)s: %(message)s",
    )


__all__ = ["default_log_level", "setup_logging"]
