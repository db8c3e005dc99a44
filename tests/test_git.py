import logging
from pathlib import Path

import pytest

from actlocal.context import background
from actlocal.git import (
    CloneInput,
    GitError,
    NoRepoError,
    ShortRefError,
    clone_if_required,
    find_git_ref,
    find_git_remote_url,
    find_git_revision,
    find_git_slug,
    find_github_repo,
)

SHA1 = "1" * 40
SHA2 = "2" * 40


def make_repo(path: Path, head="ref: refs/heads/master", refs=None, packed=None, config=""):
    git_dir = path / ".git"
    (git_dir / "refs" / "heads").mkdir(parents=True)
    (git_dir / "refs" / "tags").mkdir(parents=True)
    (git_dir / "HEAD").write_text(head + "\n")
    for name, sha in (refs or {}).items():
        ref_file = git_dir / name
        ref_file.parent.mkdir(parents=True, exist_ok=True)
        ref_file.write_text(sha + "\n")
    if packed:
        lines = ["# pack-refs with: peeled fully-peeled sorted"]
        lines += [f"{sha} {name}" for name, sha in packed.items()]
        (git_dir / "packed-refs").write_text("\n".join(lines) + "\n")
    (git_dir / "config").write_text(config)
    return path


@pytest.mark.parametrize(
    "url, provider, slug",
    [
        ("https://git-codecommit.us-east-1.amazonaws.com/v1/repos/my-repo-name", "CodeCommit", "my-repo-name"),
        ("ssh://git-codecommit.us-west-2.amazonaws.com/v1/repos/my-repo", "CodeCommit", "my-repo"),
        ("github.com:nektos/act.git", "GitHub", "nektos/act"),
        ("github.com:nektos/act", "GitHub", "nektos/act"),
        ("https://github.com/nektos/act.git", "GitHub", "nektos/act"),
        ("http://github.com/nektos/act.git", "GitHub", "nektos/act"),
        ("https://github.com/nektos/act", "GitHub", "nektos/act"),
        ("http://github.com/nektos/act", "GitHub", "nektos/act"),
        ("git+ssh://github.com/owner/repo.git", "GitHub", "owner/repo"),
        ("http://myotherrepo.com/act.git", "", "http://myotherrepo.com/act.git"),
    ],
)
def test_find_git_slug(url, provider, slug):
    assert find_git_slug(url, "github.com") == (provider, slug)


def test_find_git_slug_enterprise():
    assert find_git_slug("https://ghe.example.com/owner/repo.git", "ghe.example.com") == (
        "GitHubEnterprise",
        "owner/repo",
    )
    assert find_git_slug("ghe.example.com:owner/repo", "ghe.example.com") == (
        "GitHubEnterprise",
        "owner/repo",
    )


CONFIG = """[core]
\tbare = false
[remote "origin"]
\turl = https://git-codecommit.us-east-1.amazonaws.com/v1/repos/my-repo-name
\tfetch = +refs/heads/*:refs/remotes/origin/*
[remote "upstream"]
\turl = "https://github.com/AwesomeOwner/MyAwesomeRepo.git"
[remote "empty"]
\tfetch = +refs/heads/*:refs/remotes/empty/*
"""


def test_find_git_remote_url(tmp_path):
    repo = make_repo(tmp_path / "repo", config=CONFIG)
    ctx = background()
    assert (
        find_git_remote_url(ctx, repo, "origin")
        == "https://git-codecommit.us-east-1.amazonaws.com/v1/repos/my-repo-name"
    )
    assert (
        find_git_remote_url(ctx, repo, "upstream")
        == "https://github.com/AwesomeOwner/MyAwesomeRepo.git"
    )


def test_find_git_remote_url_without_url(tmp_path):
    repo = make_repo(tmp_path / "repo", config=CONFIG)
    with pytest.raises(GitError, match="has no URL"):
        find_git_remote_url(background(), repo, "empty")


def test_find_git_remote_url_missing_remote(tmp_path):
    repo = make_repo(tmp_path / "repo", config=CONFIG)
    with pytest.raises(GitError, match="remote not found"):
        find_git_remote_url(background(), repo, "nope")


def test_find_github_repo_defaults_to_origin(tmp_path):
    config = '[remote "origin"]\n\turl = https://github.com/nektos/act.git\n'
    repo = make_repo(tmp_path / "repo", config=config)
    assert find_github_repo(background(), repo, "github.com", "") == "nektos/act"


def test_find_ref_new_repo(tmp_path):
    repo = make_repo(tmp_path / "new_repo")
    with pytest.raises(GitError):
        find_git_ref(background(), repo)


def test_find_ref_new_repo_with_commit(tmp_path):
    repo = make_repo(tmp_path / "r", refs={"refs/heads/master": SHA1})
    assert find_git_ref(background(), repo) == "refs/heads/master"


def test_find_ref_current_head_is_tag(tmp_path):
    repo = make_repo(
        tmp_path / "r", head=SHA1, refs={"refs/heads/master": SHA1, "refs/tags/v1.2.3": SHA1}
    )
    assert find_git_ref(background(), repo) == "refs/tags/v1.2.3"


def test_find_ref_current_head_is_same_as_tag(tmp_path):
    repo = make_repo(tmp_path / "r", refs={"refs/heads/master": SHA1, "refs/tags/v1.4.2": SHA1})
    assert find_git_ref(background(), repo) == "refs/tags/v1.4.2"


def test_find_ref_current_head_is_not_tag(tmp_path):
    repo = make_repo(tmp_path / "r", refs={"refs/heads/master": SHA2, "refs/tags/v1.4.2": SHA1})
    assert find_git_ref(background(), repo) == "refs/heads/master"


def test_find_ref_current_head_is_another_branch(tmp_path):
    repo = make_repo(
        tmp_path / "r", head="ref: refs/heads/mybranch", refs={"refs/heads/mybranch": SHA1}
    )
    assert find_git_ref(background(), repo) == "refs/heads/mybranch"


def test_find_ref_from_packed_refs(tmp_path):
    repo = make_repo(
        tmp_path / "r", packed={"refs/heads/master": SHA1, "refs/tags/v2.0.0": SHA1}
    )
    assert find_git_ref(background(), repo) == "refs/tags/v2.0.0"


def test_find_git_revision_from_subdirectory(tmp_path):
    repo = make_repo(tmp_path / "r", refs={"refs/heads/master": SHA1})
    sub = repo / "a" / "b"
    sub.mkdir(parents=True)
    assert find_git_revision(background(), sub) == (SHA1[:7], SHA1)


def test_find_git_revision_through_gitdir_file(tmp_path):
    real = make_repo(tmp_path / "real", refs={"refs/heads/master": SHA2})
    work = tmp_path / "work"
    work.mkdir()
    (work / ".git").write_text(f"gitdir: {real / '.git'}\n")
    assert find_git_revision(background(), work) == (SHA2[:7], SHA2)


def test_find_git_revision_zero_hash(tmp_path):
    repo = make_repo(tmp_path / "r", refs={"refs/heads/master": "0" * 40})
    with pytest.raises(GitError, match="could not be resolved"):
        find_git_revision(background(), repo)


def test_find_git_revision_outside_repo(tmp_path):
    plain = tmp_path / "plain"
    plain.mkdir()
    with pytest.raises(NoRepoError):
        find_git_revision(background(), plain)


def test_short_ref_error_carries_commit():
    err = ShortRefError(commit="5a4ac9002d0be2fb38bd78e4b4dbde5606d7042f")
    assert isinstance(err, GitError)
    assert err.commit == "5a4ac9002d0be2fb38bd78e4b4dbde5606d7042f"
    assert str(err) == "short SHA references are not supported"


def test_clone_if_required_keeps_existing_repo(tmp_path):
    repo = make_repo(tmp_path / "r", refs={"refs/heads/master": SHA1})
    clone_input = CloneInput(url="https://github.com/actions/checkout", ref="v2", dir=str(repo))
    result = clone_if_required(
        background(), "refs/heads/v2", clone_input, logging.getLogger("test")
    )
    assert result == str(repo)
    assert (repo / ".git" / "HEAD").read_text() == "ref: refs/heads/master\n"