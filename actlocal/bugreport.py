"""System information gathered for bug reports."""

from __future__ import annotations

import os
import platform
import sys
from typing import Any, Iterable, Mapping, TextIO

from .config import config_locations, read_args_file

__all__ = ["COMMON_SOCKET_PATHS", "found_sockets", "bug_report"]

COMMON_SOCKET_PATHS = (
    "/var/run/docker.sock",
    "/var/run/podman/podman.sock",
    "$HOME/.colima/docker.sock",
    "$XDG_RUNTIME_DIR/docker.sock",
    r"\\.\pipe\docker_engine",
    "$HOME/.docker/run/docker.sock",
)

_UNSET_DOCKER_HOST = "DOCKER_HOST environment variable is unset/empty."


def _line(key: str, value: Any) -> str:
    return f"{key:<24}{value}\n"


def _expand(path: str) -> str:
    if not path.startswith("$"):
        return path
    variable = path.split("/")[0]
    return path.replace(variable, os.environ.get(variable[1:], ""), 1)


def found_sockets(socket_paths: Iterable[str] | None = None) -> list[str]:
    """Return the socket paths that exist, with a leading ``$VAR`` expanded."""
    if socket_paths is None:
        socket_paths = COMMON_SOCKET_PATHS
    found = []
    for path in socket_paths:
        expanded = _expand(path)
        try:
            os.stat(expanded)
        except (OSError, ValueError):
            continue
        found.append(expanded)
    return found


def _host_section(info: Mapping[str, Any]) -> str:
    fields = [
        ("\tEngine version:", "ServerVersion"),
        ("\tEngine runtime:", "DefaultRuntime"),
        ("\tCgroup version:", "CgroupVersion"),
        ("\tCgroup driver:", "CgroupDriver"),
        ("\tStorage driver:", "Driver"),
        ("\tRegistry URI:", "IndexServerAddress"),
        ("\tOS:", "OperatingSystem"),
        ("\tOS type:", "OSType"),
        ("\tOS version:", "OSVersion"),
        ("\tOS arch:", "Architecture"),
        ("\tOS kernel:", "KernelVersion"),
        ("\tOS CPU:", "NCPU"),
    ]
    section = "Docker Engine:\n"
    section += "".join(_line(label, info.get(key, "")) for label, key in fields)
    memory = int(info.get("MemTotal") or 0) // 1024 // 1024
    section += _line("\tOS memory:", f"{memory} MB")
    section += "\tSecurity options:\n"
    for option in info.get("SecurityOptions") or ():
        section += f"\t\t{option}\n"
    return section


def bug_report(
    version: str,
    host_info: Mapping[str, Any] | None = None,
    out: TextIO | None = None,
) -> str:
    """Build the bug report, write it to ``out`` and return it.

    ``host_info`` holds the container engine's info fields; without it the
    engine section is left out.
    """
    out = out if out is not None else sys.stdout

    report = _line("act version:", version)
    report += _line("OS:", sys.platform)
    report += _line("Arch:", platform.machine())
    report += _line("NumCPU:", os.cpu_count() or 0)

    docker_host = os.environ.get("DOCKER_HOST") or _UNSET_DOCKER_HOST
    report += _line("Docker host:", docker_host)
    report += "Sockets found:\n"
    for path in found_sockets():
        report += f"\t{path}\n"

    report += _line("Config files:", "")
    for location in config_locations():
        args = read_args_file(location, False) if location else []
        if args:
            report += f"\t{location}:\n"
            for arg in args:
                report += f"\t\t{arg}\n"

    report += "Build info:\n"
    report += _line("\tPython version:", platform.python_version())
    report += _line("\tImplementation:", platform.python_implementation())
    report += _line("\tExecutable:", sys.executable)

    if host_info is not None:
        report += _host_section(host_info)

    out.write(report + "\n")
    return report