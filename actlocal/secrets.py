"""Secrets given on the command line."""

from __future__ import annotations

import getpass
import logging
import os
from typing import Iterable

__all__ = ["new_secrets"]

_log = logging.getLogger(__name__)


def new_secrets(secret_list: Iterable[str]) -> dict[str, str]:
    """Build the secrets map from ``NAME=value`` or ``NAME`` entries.

    Names are upper-cased. A bare name takes its value from the environment,
    or is asked for on the terminal when the environment has none.
    """
    secrets: dict[str, str] = {}
    for pair in secret_list:
        name, sep, value = pair.partition("=")
        name = name.upper()
        if name in secrets:
            _log.error("Secret %s is already defined (secrets are case insensitive)", name)
        if sep:
            secrets[name] = value
            continue
        env = os.environ.get(name)
        if env:
            secrets[name] = env
            continue
        try:
            secrets[name] = getpass.getpass(f"Provide value for '{name}': ")
        except (EOFError, OSError) as err:
            raise RuntimeError(f"failed to read input: {err}") from err
    return secrets