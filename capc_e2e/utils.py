"""Utility functions for capc-e2e."""

import logging
import random
import re
import string
import sys
from typing import Any

from capc_e2e.constants import RANDOM_SUFFIX_LENGTH

_random = random.SystemRandom()


def random_string(length: int = RANDOM_SUFFIX_LENGTH) -> str:
    """Generate a random lowercase alphanumeric string.

    Parameters
    ----------
    length : int
        Number of characters

    Returns
    -------
    str
        Random string usable in Kubernetes object names
    """
    return "".join(_random.choices(string.ascii_lowercase + string.digits, k=length))


def sanitize_name(name: str) -> str:
    """Sanitize a name for use as a Kubernetes object name.

    - Convert to lowercase
    - Replace invalid characters with dashes
    - Collapse consecutive dashes and trim them at both ends
    - Limit to 63 characters (DNS label limit)

    Parameters
    ----------
    name : str
        Name to sanitize

    Returns
    -------
    str
        Sanitized name
    """
    name = name.lower()
    name = re.sub(r"[^a-z0-9\-]", "-", name)
    name = re.sub(r"-+", "-", name)
    name = name.strip("-")
    return name[:63].rstrip("-")


def unique_name(prefix: str, length: int = RANDOM_SUFFIX_LENGTH) -> str:
    """Append a random suffix to prefix, keeping the result a valid name."""
    suffix = random_string(length)
    base = sanitize_name(prefix)[: 62 - length].rstrip("-")
    return f"{base}-{suffix}"


def log_and_print_error(message: str, *args: Any) -> None:
    """Log error message and print to stderr.

    Parameters
    ----------
    message : str
        Error message with optional format placeholders
    *args : Any
        Format arguments for message
    """
    logging.error(message, *args)
    formatted_msg = message % args if args else message
    print(f"Error: {formatted_msg}", file=sys.stderr)
