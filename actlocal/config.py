"""Run-command configuration: argument files, environment files and image selection."""

from __future__ import annotations

import logging
import os
import re
import sys
from pathlib import Path
from typing import Iterable, MutableMapping, Sequence

from dotenv import dotenv_values

__all__ = [
    "CONFIG_FILE_NAME",
    "SURVEY_OPTIONS",
    "read_args_file",
    "parse_envs",
    "read_envs",
    "config_locations",
    "collect_args",
    "survey_option",
    "default_image_survey",
]

_log = logging.getLogger(__name__)

CONFIG_FILE_NAME = ".actrc"

SURVEY_OPTIONS = ("Large", "Medium", "Micro")
_SURVEY_DEFAULT = "Medium"

_SURVEY_MESSAGE = (
    "Please choose the default image you want to use with act:\n\n"
    "  - Large size image: +20GB Docker image, includes almost all tools used on "
    "GitHub Actions (IMPORTANT: currently only ubuntu-18.04 platform is available)\n"
    "  - Medium size image: ~500MB, includes only necessary tools to bootstrap actions "
    "and aims to be compatible with all actions\n"
    "  - Micro size image: <200MB, contains only NodeJS required to bootstrap actions, "
    "doesn't work with all actions\n\n"
    "Default image and other options can be changed manually in ~/.actrc"
)

_SURVEY_CHOICES = {
    "Large": (
        "-P ubuntu-latest=catthehacker/ubuntu:full-latest\n"
        "-P ubuntu-latest=catthehacker/ubuntu:full-20.04\n"
        "-P ubuntu-18.04=catthehacker/ubuntu:full-18.04\n"
    ),
    "Medium": (
        "-P ubuntu-latest=catthehacker/ubuntu:act-latest\n"
        "-P ubuntu-22.04=catthehacker/ubuntu:act-22.04\n"
        "-P ubuntu-20.04=catthehacker/ubuntu:act-20.04\n"
        "-P ubuntu-18.04=catthehacker/ubuntu:act-18.04\n"
    ),
    "Micro": (
        "-P ubuntu-latest=node:16-buster-slim\n"
        "-P ubuntu-22.04=node:16-bullseye-slim\n"
        "-P ubuntu-20.04=node:16-buster-slim\n"
        "-P ubuntu-18.04=node:16-buster-slim\n"
    ),
}

_WHITESPACE = re.compile(r"\s")


def read_args_file(file: str | os.PathLike, split: bool) -> list[str]:
    """Read arguments from a file, one per line.

    With ``split`` only lines starting with ``-`` are kept, each cut at its
    first whitespace into flag and value. Without it every trimmed line is kept.
    A file that cannot be opened gives no arguments.
    """
    try:
        with open(file, encoding="utf-8") as handle:
            lines = handle.read().splitlines()
    except (OSError, ValueError):
        return []
    args: list[str] = []
    for line in lines:
        arg = line.strip()
        if split:
            if arg.startswith("-"):
                args.extend(_WHITESPACE.split(arg, maxsplit=1))
        else:
            args.append(arg)
    return args


def parse_envs(env: Iterable[str] | None, envs: MutableMapping[str, str]) -> bool:
    """Add ``NAME=value`` (or bare ``NAME``, as empty) entries to ``envs``.

    Returns False when ``env`` is None.
    """
    if env is None:
        return False
    for entry in env:
        name, _, value = entry.partition("=")
        envs[name] = value
    return True


def read_envs(path: str | os.PathLike, envs: MutableMapping[str, str]) -> bool:
    """Add the variables of a dotenv file to ``envs``; False if the file is absent."""
    if not path or not os.path.exists(path):
        return False
    try:
        values = dotenv_values(path)
    except (OSError, ValueError) as err:
        _log.critical("Error loading from %s: %s", path, err)
        raise
    for key, value in values.items():
        envs[key] = value if value is not None else ""
    return True


def _xdg_config_dirs() -> list[str]:
    home = os.environ.get("XDG_CONFIG_HOME") or os.path.join(str(Path.home()), ".config")
    dirs = [home]
    extra = os.environ.get("XDG_CONFIG_DIRS") or "/etc/xdg"
    dirs.extend(d for d in extra.split(os.pathsep) if d)
    return dirs


def _search_config_file(name: str) -> str:
    for directory in _xdg_config_dirs():
        candidate = os.path.join(directory, name)
        if os.path.exists(candidate):
            return candidate
    return ""


def config_locations() -> list[str]:
    """Return the argument files to read: home, XDG config (or "") and the current directory."""
    home = str(Path.home())
    actrc_xdg = ""
    for name in ("act/actrc", CONFIG_FILE_NAME):
        found = _search_config_file(name)
        if found:
            actrc_xdg = found
            break
    return [os.path.join(home, CONFIG_FILE_NAME), actrc_xdg, CONFIG_FILE_NAME]


def collect_args(argv: Sequence[str] | None = None) -> list[str]:
    """Return the arguments from every config file followed by ``argv``."""
    if argv is None:
        argv = sys.argv[1:]
    args: list[str] = []
    for location in config_locations():
        args.extend(read_args_file(location, True))
    args.extend(argv)
    return args


def survey_option(answer: str) -> str:
    """Return the ``.actrc`` lines for an image size choice; unknown choices give ""."""
    return _SURVEY_CHOICES.get(answer, "")


def _ask() -> str:
    print(_SURVEY_MESSAGE)
    prompt = f"Choose one of {', '.join(SURVEY_OPTIONS)} [{_SURVEY_DEFAULT}]: "
    while True:
        try:
            reply = input(prompt).strip()
        except EOFError as err:
            raise RuntimeError("no answer given for the default image") from err
        if not reply:
            return _SURVEY_DEFAULT
        for option in SURVEY_OPTIONS:
            if reply.lower() == option.lower():
                return option
        print(f"Please answer one of {', '.join(SURVEY_OPTIONS)}.")


def default_image_survey(actrc: str | os.PathLike, answer: str | None = None) -> None:
    """Write the platform images for ``answer`` to ``actrc``, asking when it is None."""
    if answer is None:
        answer = _ask()
    with open(actrc, "w", encoding="utf-8") as handle:
        handle.write(survey_option(answer))