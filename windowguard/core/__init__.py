"""Core utilities for the rate limiter."""

from windowguard.core.config import Settings, settings
from windowguard.core.duration import parse_duration
from windowguard.core.headers import apply_headers, build_headers
from windowguard.core.ip import default_key_generator, extract_ip
from windowguard.core.logging import get_logger, setup_logging

__all__ = [
    "Settings",
    "settings",
    "parse_duration",
    "apply_headers",
    "build_headers",
    "default_key_generator",
    "extract_ip",
    "get_logger",
    "setup_logging",
]
