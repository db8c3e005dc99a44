"""Command-line input values and the paths derived from them."""

from __future__ import annotations

import os
from dataclasses import dataclass, field

__all__ = ["DEFAULT_PLATFORMS", "Input"]

DEFAULT_PLATFORMS = {
    "ubuntu-latest": "node:16-buster-slim",
    "ubuntu-22.04": "node:16-bullseye-slim",
    "ubuntu-20.04": "node:16-buster-slim",
    "ubuntu-18.04": "node:16-buster-slim",
}


@dataclass
class Input:
    """Options given to the run command."""

    actor: str = "nektos/act"
    workdir: str | os.PathLike = "."
    workflows_path: str = "./.github/workflows/"
    autodetect_event: bool = False
    event_path: str = ""
    reuse_containers: bool = False
    bind_workdir: bool = False
    secrets: list[str] = field(default_factory=list)
    envs: list[str] = field(default_factory=list)
    inputs: list[str] = field(default_factory=list)
    platforms: list[str] = field(default_factory=list)
    dryrun: bool = False
    force_pull: bool = True
    force_rebuild: bool = True
    no_output: bool = False
    envfile: str = ".env"
    inputfile: str = ".input"
    secretfile: str = ".secrets"
    insecure_secrets: bool = False
    default_branch: str = ""
    privileged: bool = False
    userns_mode: str = ""
    container_architecture: str = ""
    container_daemon_socket: str = "/var/run/docker.sock"
    container_options: str = ""
    no_workflow_recurse: bool = False
    use_git_ignore: bool = True
    github_instance: str = "github.com"
    container_cap_add: list[str] = field(default_factory=list)
    container_cap_drop: list[str] = field(default_factory=list)
    auto_remove: bool = False
    artifact_server_path: str = ""
    artifact_server_addr: str = ""
    artifact_server_port: str = "34567"
    json_logger: bool = False
    no_skip_checkout: bool = False
    remote_name: str = "origin"
    replace_ghe_action_with_github_com: list[str] = field(default_factory=list)
    replace_ghe_action_token_with_github_com: str = ""

    def resolve(self, path: str) -> str:
        """Make ``path`` absolute against the working directory; empty stays empty."""
        basedir = os.path.abspath(self.workdir)
        if path == "":
            return path
        if not os.path.isabs(path):
            path = os.path.normpath(os.path.join(basedir, path))
        return path

    def resolved_envfile(self) -> str:
        """Path of the environment file."""
        return self.resolve(self.envfile)

    def resolved_secretfile(self) -> str:
        """Path of the secrets file."""
        return self.resolve(self.secretfile)

    def resolved_workdir(self) -> str:
        """Absolute working directory."""
        return self.resolve(".")

    def resolved_workflows_path(self) -> str:
        """Path of the workflow file or directory."""
        return self.resolve(self.workflows_path)

    def resolved_event_path(self) -> str:
        """Path of the event JSON file."""
        return self.resolve(self.event_path)

    def resolved_inputfile(self) -> str:
        """Path of the action input file."""
        return self.resolve(self.inputfile)

    def new_platforms(self) -> dict[str, str]:
        """Return the platform-to-image map, with ``platform=image`` overrides applied."""
        platforms = dict(DEFAULT_PLATFORMS)
        for entry in self.platforms:
            parts = entry.split("=")
            if len(parts) == 2:
                platforms[parts[0]] = parts[1]
        return platforms