"""Reading git repositories and cloning action sources."""

from __future__ import annotations

import base64
import logging
import os
import re
import subprocess
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from .context import Context, logger
from .executor import Executor

__all__ = [
    "GitError",
    "ShortRefError",
    "NoRepoError",
    "CloneInput",
    "find_git_revision",
    "find_git_ref",
    "find_github_repo",
    "find_git_remote_url",
    "find_git_slug",
    "clone_if_required",
    "git_clone_executor",
]

_CODECOMMIT_HTTP = re.compile(r"^https?://git-codecommit\.(.+)\.amazonaws.com/v1/repos/(.+)$")
_CODECOMMIT_SSH = re.compile(r"ssh://git-codecommit\.(.+)\.amazonaws.com/v1/repos/(.+)$")
_GITHUB_HTTP = re.compile(r"^https?://.*github.com.*/(.+)/(.+?)(?:.git)?$")
_GITHUB_SSH = re.compile(r"github.com[:/](.+)/(.+?)(?:.git)?$")

_SECTION = re.compile(r'^\[\s*([^\s\]"]+)(?:\s+"((?:[^"\\]|\\.)*)")?\s*\]')
_HASH = re.compile(r"^[0-9a-f]{40}(?:[0-9a-f]{24})?$")
_ZERO = re.compile(r"^0+$")

_clone_lock = threading.Lock()


class GitError(Exception):
    """A git operation failed; ``commit`` names the commit involved, if known."""

    def __init__(self, message: str = "", commit: str = "") -> None:
        super().__init__(message)
        self.commit = commit


class ShortRefError(GitError):
    """A short SHA was used as a reference."""

    def __init__(self, commit: str = "") -> None:
        super().__init__("short SHA references are not supported", commit)


class NoRepoError(GitError):
    """No git repository was found."""

    def __init__(self, path: str = "") -> None:
        super().__init__("unable to find git repo")
        self.path = path


@dataclass
class CloneInput:
    """What to clone, at which ref, into which directory."""

    url: str
    ref: str
    dir: str
    token: str = ""


@dataclass(frozen=True)
class _Repo:
    git_dir: Path
    common_dir: Path
    worktree: Path


def _open_repo(path: str | os.PathLike, detect: bool = True) -> _Repo:
    start = Path(path).resolve()
    if start.is_file():
        start = start.parent
    candidates = [start, *start.parents] if detect else [start]
    for directory in candidates:
        dot = directory / ".git"
        if dot.is_dir():
            git_dir = dot
        elif dot.is_file():
            content = dot.read_text().strip()
            if not content.startswith("gitdir:"):
                continue
            git_dir = (directory / content[len("gitdir:"):].strip()).resolve()
        else:
            continue
        common_dir = git_dir
        common_file = git_dir / "commondir"
        if common_file.is_file():
            common_dir = (git_dir / common_file.read_text().strip()).resolve()
        return _Repo(git_dir, common_dir, directory)
    raise NoRepoError(str(path))


def _read_refs(repo: _Repo) -> dict[str, str]:
    """Return every reference under refs/ that points straight at an object."""
    refs: dict[str, str] = {}
    packed = repo.common_dir / "packed-refs"
    if packed.is_file():
        for line in packed.read_text().splitlines():
            line = line.strip()
            if not line or line.startswith(("#", "^")):
                continue
            sha, _, name = line.partition(" ")
            refs[name.strip()] = sha
    refs_dir = repo.common_dir / "refs"
    if refs_dir.is_dir():
        for ref_file in refs_dir.rglob("*"):
            if not ref_file.is_file():
                continue
            content = ref_file.read_text().strip()
            if content.startswith("ref:"):
                continue
            refs[ref_file.relative_to(repo.common_dir).as_posix()] = content
    return refs


def _read_loose_ref(repo: _Repo, name: str) -> str | None:
    for base in (repo.git_dir, repo.common_dir):
        ref_file = base / name
        if ref_file.is_file():
            return ref_file.read_text().strip()
    return None


def _resolve_head(repo: _Repo) -> str:
    head_file = repo.git_dir / "HEAD"
    if not head_file.is_file():
        raise GitError("reference not found: HEAD")
    content = head_file.read_text().strip()
    packed: dict[str, str] | None = None
    for _ in range(10):
        if not content.startswith("ref:"):
            return content
        target = content[len("ref:"):].strip()
        loose = _read_loose_ref(repo, target)
        if loose is not None:
            content = loose
            continue
        if packed is None:
            packed = _read_refs(repo)
        if target not in packed:
            raise GitError(f"reference not found: {target}")
        content = packed[target]
    raise GitError("reference chain too deep")


def find_git_revision(ctx: Context, file: str | os.PathLike) -> tuple[str, str]:
    """Return the short and full SHA of HEAD for the repository holding ``file``."""
    log = logger(ctx)
    try:
        repo = _open_repo(file)
    except NoRepoError as err:
        log.error("path %s not located inside a git repository: %s", file, err)
        raise
    sha = _resolve_head(repo)
    if not _HASH.match(sha) or _ZERO.match(sha):
        raise GitError("HEAD sha1 could not be resolved")
    log.debug("Found revision: %s", sha)
    return sha[:7], sha.strip()


def find_git_ref(ctx: Context, file: str | os.PathLike) -> str:
    """Return the tag, or failing that the branch, that HEAD's commit is on."""
    log = logger(ctx)
    log.debug("Loading revision from git directory")
    _, ref = find_git_revision(ctx, file)
    log.debug("HEAD points to '%s'", ref)

    repo = _open_repo(file)
    ref_tag = ""
    ref_branch = ""
    # A branch may match first; keep looking so a tag on the same commit wins.
    for name, sha in sorted(_read_refs(repo).items()):
        if sha == ref:
            if name.startswith("refs/tags/"):
                ref_tag = name
            if name.startswith("refs/heads/"):
                ref_branch = name
        if ref_tag and ref_branch:
            break

    if ref_tag:
        return ref_tag
    if ref_branch:
        return ref_branch
    raise GitError(
        f"failed to identify reference (tag/branch) for the checked-out revision '{ref}'"
    )


def find_github_repo(
    ctx: Context, file: str | os.PathLike, github_instance: str, remote_name: str = "origin"
) -> str:
    """Return the ``owner/name`` slug of the repository's remote."""
    if not remote_name:
        remote_name = "origin"
    url = find_git_remote_url(ctx, file, remote_name)
    _, slug = find_git_slug(url, github_instance)
    return slug


def _config_value(raw: str) -> str:
    out: list[str] = []
    in_quotes = False
    chars = iter(raw.strip())
    for ch in chars:
        if ch == '"':
            in_quotes = not in_quotes
        elif ch == "\\":
            nxt = next(chars, "")
            out.append({"n": "\n", "t": "\t", "b": "\b"}.get(nxt, nxt))
        elif ch in "#;" and not in_quotes:
            break
        else:
            out.append(ch)
    return "".join(out).strip()


def _parse_config(text: str) -> dict[tuple[str, str], dict[str, list[str]]]:
    sections: dict[tuple[str, str], dict[str, list[str]]] = {}
    current: tuple[str, str] | None = None
    for raw in text.splitlines():
        line = raw.strip()
        if not line or line[0] in "#;":
            continue
        match = _SECTION.match(line)
        if match:
            name, sub = match.group(1), match.group(2)
            if sub is None and "." in name:
                name, _, sub = name.partition(".")
            sub = re.sub(r"\\(.)", r"\1", sub or "")
            current = (name.lower(), sub)
            sections.setdefault(current, {})
            continue
        if current is None:
            continue
        key, sep, value = line.partition("=")
        sections[current].setdefault(key.strip().lower(), []).append(
            _config_value(value) if sep else "true"
        )
    return sections


def find_git_remote_url(ctx: Context, file: str | os.PathLike, remote_name: str) -> str:
    """Return the first URL configured for ``remote_name``."""
    repo = _open_repo(file)
    config_file = repo.common_dir / "config"
    text = config_file.read_text() if config_file.is_file() else ""
    remote = _parse_config(text).get(("remote", remote_name))
    if remote is None:
        raise GitError("remote not found")
    urls = remote.get("url", [])
    if not urls:
        raise GitError(f"remote '{remote_name}' exists but has no URL")
    return urls[0]


def find_git_slug(url: str, github_instance: str) -> tuple[str, str]:
    """Return the hosting provider and repository slug for a remote URL.

    Unknown hosts give an empty provider and the URL itself as the slug.
    """
    for pattern in (_CODECOMMIT_HTTP, _CODECOMMIT_SSH):
        match = pattern.search(url)
        if match:
            return "CodeCommit", match.group(2)
    for pattern in (_GITHUB_HTTP, _GITHUB_SSH):
        match = pattern.search(url)
        if match:
            return "GitHub", f"{match.group(1)}/{match.group(2)}"
    if github_instance != "github.com":
        ghe_http = re.compile(rf"^https?://{github_instance}/(.+)/(.+?)(?:.git)?$")
        ghe_ssh = re.compile(rf"{github_instance}[:/](.+)/(.+?)(?:.git)?$")
        for pattern in (ghe_http, ghe_ssh):
            match = pattern.search(url)
            if match:
                return "GitHubEnterprise", f"{match.group(1)}/{match.group(2)}"
    return "", url


def _auth_args(token: str) -> list[str]:
    if not token:
        return []
    credentials = base64.b64encode(f"token:{token}".encode()).decode()
    return ["-c", f"http.extraHeader=Authorization: Basic {credentials}"]


def _git(cwd: str | None, *args: str) -> str:
    try:
        result = subprocess.run(
            ["git", *args], cwd=cwd, capture_output=True, text=True, check=False
        )
    except OSError as err:
        raise GitError(f"unable to run git: {err}") from err
    if result.returncode != 0:
        message = result.stderr.strip() or f"git exited with status {result.returncode}"
        raise GitError(message)
    return result.stdout.strip()


def _rev_parse(repo_dir: str, rev: str) -> str:
    try:
        return _git(repo_dir, "rev-parse", "--verify", "--quiet", f"{rev}^{{commit}}")
    except GitError as err:
        raise GitError(f"reference not found: {rev}") from err


def _ref_exists(repo_dir: str, name: str) -> bool:
    try:
        _git(repo_dir, "show-ref", "--verify", "--quiet", name)
    except GitError:
        return False
    return True


def clone_if_required(
    ctx: Context, ref_name: str, clone_input: CloneInput, log: Any = None
) -> str:
    """Clone ``clone_input.url`` unless its directory already holds a repository.

    Returns the repository directory.
    """
    log = log if log is not None else logger(ctx)
    try:
        _open_repo(clone_input.dir, detect=False)
        return clone_input.dir
    except NoRepoError:
        pass
    try:
        output = _git(
            None, *_auth_args(clone_input.token), "clone", "--", clone_input.url, clone_input.dir
        )
    except GitError as err:
        log.error("Unable to clone %s %s: %s", clone_input.url, ref_name, err)
        raise
    if output:
        log.debug("%s", output)
    os.chmod(clone_input.dir, 0o755)
    return clone_input.dir


def _clone(ctx: Context, clone_input: CloneInput, log: logging.Logger | logging.LoggerAdapter) -> None:
    ref = clone_input.ref
    ref_name = f"refs/heads/{ref}"
    repo_dir = clone_if_required(ctx, ref_name, clone_input, log)
    auth = _auth_args(clone_input.token)

    _git(
        repo_dir, *auth, "fetch", "--force", "--update-head-ok", "--tags",
        "origin", "+refs/heads/*:refs/remotes/origin/*",
    )

    try:
        sha = _rev_parse(repo_dir, ref)
    except GitError as err:
        log.error("Unable to resolve %s: %s", ref, err)
        sha = ""
    if sha and sha != ref and sha.startswith(ref):
        raise ShortRefError(commit=sha)

    remote_ref = f"refs/remotes/origin/{ref}"
    if _ref_exists(repo_dir, f"refs/tags/{ref}"):
        ref_type, rev = "tag", f"refs/tags/{ref}"
    elif _ref_exists(repo_dir, remote_ref):
        ref_type, rev = "branch", remote_ref
    else:
        ref_type, rev = "sha", ref

    try:
        sha = _rev_parse(repo_dir, rev)
    except GitError as err:
        log.error("Unable to resolve %s: %s", ref, err)
        raise

    if sha != ref and ref_type == "branch":
        log.debug("Provided ref is not a sha. Checking out branch before pulling changes")
        try:
            _git(repo_dir, "checkout", "--force", remote_ref)
        except GitError as err:
            log.error("Unable to checkout %s: %s", remote_ref, err)
            raise

    try:
        _git(repo_dir, *auth, "pull", "--force")
    except GitError as err:
        log.debug("Unable to pull %s: %s", ref_name, err)
    log.debug("Cloned %s to %s", clone_input.url, clone_input.dir)

    if sha != ref and ref_type == "branch":
        log.debug("Provided ref is not a sha. Updating branch ref after pull")
        try:
            sha = _rev_parse(repo_dir, rev)
        except GitError as err:
            log.error("Unable to resolve %s: %s", ref, err)
            raise

    try:
        _git(repo_dir, "checkout", "--force", sha)
    except GitError as err:
        log.error("Unable to checkout %s: %s", sha, err)
        raise
    try:
        _git(repo_dir, "reset", "--hard", sha)
    except GitError as err:
        log.error("Unable to reset to %s: %s", sha, err)
        raise
    log.debug("Checked out %s", ref)


def git_clone_executor(clone_input: CloneInput) -> Executor:
    """An executor that clones or updates a repository and checks out its ref."""

    def run(ctx: Context) -> None:
        log = logger(ctx)
        log.info("  \u2601  git clone '%s' # ref=%s", clone_input.url, clone_input.ref)
        log.debug("  cloning %s to %s", clone_input.url, clone_input.dir)
        with _clone_lock:
            _clone(ctx, clone_input, log)

    return Executor(run)