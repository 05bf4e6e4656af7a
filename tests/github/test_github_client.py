"""Tests for the GitHub REST client."""

from __future__ import annotations

import base64

import pytest

from gitmind.errors import (
    ConflictError,
    DownloadError,
    Forbidden,
    GitHubError,
    NetworkError,
    NotFound,
    ParseError,
    PartialFailure,
    RateLimited,
)
from gitmind.github import GitHubClient
from gitmind.http import HttpRequest
from tests._fixtures.fake_services import FakeGitHub

PNG_BYTES = b"\x89PNG\r\n\x1a\n\x00\xff\xfe"


def _client(fake: FakeGitHub, token: str | None = "gh-token") -> GitHubClient:
    return GitHubClient(token, transport=fake)


def test_fetch_repo_info_maps_metadata(fake_github: FakeGitHub) -> None:
    repo = _client(fake_github).fetch_repo_info("https://github.com/octo/demo")

    assert repo.full_name == "octo/demo"
    assert repo.owner == "octo"
    assert repo.stargazers_count == 42
    assert repo.default_branch == "main"
    assert repo.avatar_url == "https://avatars.example/octo"


def test_fetch_repo_info_sends_auth_and_accept_headers() -> None:
    captured: list[HttpRequest] = []
    fake = FakeGitHub()

    def transport(request: HttpRequest):
        captured.append(request)
        return fake(request)

    GitHubClient("secret", transport=transport).fetch_repo_info("octo/demo")

    headers = captured[0].headers
    assert headers["Authorization"] == "Bearer secret"
    assert headers["Accept"] == "application/vnd.github+json"
    assert captured[0].url == "https://api.github.com/repos/octo/demo"


def test_fetch_repo_info_not_found(fake_github: FakeGitHub) -> None:
    with pytest.raises(NotFound) as excinfo:
        _client(fake_github).fetch_repo_info("octo/missing")

    assert "octo/missing" in excinfo.value.user_message


def test_fetch_repo_info_rate_limited(fake_github: FakeGitHub) -> None:
    fake_github.force("GET", "/repos/octo/demo", 403, {"X-RateLimit-Remaining": "0"})

    with pytest.raises(RateLimited):
        _client(fake_github).fetch_repo_info("octo/demo")


def test_fetch_repo_info_forbidden_when_quota_remains(fake_github: FakeGitHub) -> None:
    fake_github.force("GET", "/repos/octo/demo", 403, {"X-RateLimit-Remaining": "12"})

    with pytest.raises(Forbidden) as excinfo:
        _client(fake_github).fetch_repo_info("octo/demo")

    assert not isinstance(excinfo.value, RateLimited)


def test_fetch_repo_info_other_status(fake_github: FakeGitHub) -> None:
    fake_github.force("GET", "/repos/octo/demo", 500)

    with pytest.raises(GitHubError) as excinfo:
        _client(fake_github).fetch_repo_info("octo/demo")

    assert excinfo.value.status == 500


def test_fetch_repo_info_network_failure() -> None:
    def transport(request: HttpRequest):
        raise NetworkError("boom")

    with pytest.raises(NetworkError) as excinfo:
        GitHubClient(transport=transport).fetch_repo_info("octo/demo")

    assert "Connection error" in excinfo.value.user_message


def test_fetch_repo_info_parse_error_makes_no_request(fake_github: FakeGitHub) -> None:
    with pytest.raises(ParseError):
        _client(fake_github).fetch_repo_info("not a valid thing!!")

    assert fake_github.calls == []


def test_fetch_directory_lists_root_and_subdirectories(fake_github: FakeGitHub) -> None:
    client = _client(fake_github)

    root = client.fetch_directory("octo", "demo")
    nested = client.fetch_directory("octo", "demo", "a")

    assert [(entry.name, entry.type) for entry in root] == [
        ("a", "dir"),
        ("README.md", "file"),
        ("app.py", "file"),
    ]
    assert root[0].download_url is None
    assert [entry.path for entry in nested] == ["a/nested", "a/b.txt"]
    assert nested[1].sha == fake_github.sha("a/b.txt")


def test_fetch_directory_missing_path_is_empty(fake_github: FakeGitHub) -> None:
    assert _client(fake_github).fetch_directory("octo", "demo", "does/not/exist") == []


def test_fetch_full_tree_returns_blobs_and_trees(fake_github: FakeGitHub) -> None:
    tree = _client(fake_github).fetch_full_tree("octo", "demo", "main")

    paths = [(item.path, item.type) for item in tree]
    assert ("a", "tree") in paths
    assert ("a/nested", "tree") in paths
    assert ("a/nested/deep.txt", "blob") in paths
    assert fake_github.calls[-1][1].endswith("/git/trees/main?recursive=1")


def test_fetch_full_tree_drops_submodules() -> None:
    def transport(request: HttpRequest):
        from tests._fixtures.fake_services import _json_response

        return _json_response(
            200,
            {
                "tree": [
                    {"path": "lib", "type": "commit", "sha": "x"},
                    {"path": "main.py", "type": "blob", "sha": "y"},
                ],
                "truncated": True,
            },
        )

    tree = GitHubClient(transport=transport).fetch_full_tree("octo", "demo", "main")

    assert [item.path for item in tree] == ["main.py"]


def test_fetch_raw_returns_text_and_raises_download_error(fake_github: FakeGitHub) -> None:
    client = _client(fake_github)

    assert client.fetch_raw(fake_github.download_url("app.py")) == "print('hello')\n"

    fake_github.broken_raw.add("app.py")
    with pytest.raises(DownloadError):
        client.fetch_raw(fake_github.download_url("app.py"))


def test_fetch_file_decodes_inline_content(fake_github: FakeGitHub) -> None:
    entry = _client(fake_github).fetch_file("octo", "demo", "a/b.txt")

    assert entry.content == "bee\n"
    assert entry.sha == fake_github.sha("a/b.txt")
    assert entry.data == b"bee\n"


def test_fetch_file_keeps_binary_bytes(fake_github: FakeGitHub) -> None:
    fake_github.files["logo.png"] = PNG_BYTES

    entry = _client(fake_github).fetch_file("octo", "demo", "logo.png")

    assert entry.data == PNG_BYTES
    assert entry.content is None


def test_fetch_raw_bytes_is_exact(fake_github: FakeGitHub) -> None:
    fake_github.files["logo.png"] = PNG_BYTES

    data = _client(fake_github).fetch_raw_bytes(fake_github.download_url("logo.png"))

    assert data == PNG_BYTES


def test_update_file_base64_encodes_utf8(fake_github: FakeGitHub) -> None:
    result = _client(fake_github).update_file(
        "octo", "demo", "docs/notes.md", "olá ✓\n", message="add notes"
    )

    body = fake_github.bodies[-1]
    assert base64.b64decode(body["content"]).decode("utf-8") == "olá ✓\n"
    assert "sha" not in body
    assert body["message"] == "add notes"
    assert fake_github.files["docs/notes.md"] == "olá ✓\n"
    assert result.sha == fake_github.sha("docs/notes.md")
    assert result.commit_sha == "commit-1"


def test_update_existing_file_without_sha_conflicts(fake_github: FakeGitHub) -> None:
    with pytest.raises(ConflictError):
        _client(fake_github).update_file("octo", "demo", "app.py", "x", message="m")


def test_update_file_with_current_sha_overwrites(fake_github: FakeGitHub) -> None:
    sha = fake_github.sha("app.py")

    _client(fake_github).update_file("octo", "demo", "app.py", "print(1)\n", message="m", sha=sha)

    assert fake_github.files["app.py"] == "print(1)\n"


def test_writes_require_a_token(fake_github: FakeGitHub) -> None:
    with pytest.raises(Forbidden):
        _client(fake_github, token=None).update_file("octo", "demo", "x.txt", "x", message="m")

    assert fake_github.calls == []


def test_delete_file_with_stale_sha_conflicts(fake_github: FakeGitHub) -> None:
    with pytest.raises(ConflictError):
        _client(fake_github).delete_file("octo", "demo", "app.py", "stale", message="rm")

    assert "app.py" in fake_github.files


def test_delete_file_removes_path(fake_github: FakeGitHub) -> None:
    sha = fake_github.sha("app.py")

    result = _client(fake_github).delete_file("octo", "demo", "app.py", sha, message="rm")

    assert "app.py" not in fake_github.files
    assert result.sha is None
    assert fake_github.bodies[-1] == {"message": "rm", "sha": sha}


def test_move_file_renames_within_directory(fake_github: FakeGitHub) -> None:
    client = _client(fake_github)
    sha = fake_github.sha("a/b.txt")

    client.move_file("octo", "demo", "a/b.txt", "a/c.txt", sha, "bee\n", message="rename")
    listing = [entry.name for entry in client.fetch_directory("octo", "demo", "a")]

    assert "c.txt" in listing
    assert "b.txt" not in listing
    methods = [method for method, _ in fake_github.calls[:2]]
    assert methods == ["PUT", "DELETE"]


def test_move_file_delete_failure_is_partial(fake_github: FakeGitHub) -> None:
    client = _client(fake_github)
    fake_github.force("DELETE", "/repos/octo/demo/contents/a/b.txt", 500)

    with pytest.raises(PartialFailure) as excinfo:
        client.move_file(
            "octo", "demo", "a/b.txt", "a/c.txt", fake_github.sha("a/b.txt"), "bee\n", message="mv"
        )

    error = excinfo.value
    assert error.old_path == "a/b.txt"
    assert error.new_path == "a/c.txt"
    assert error.created is not None and error.created.path == "a/c.txt"
    assert isinstance(error.cause, GitHubError)
    assert "a/b.txt" in fake_github.files and "a/c.txt" in fake_github.files


def test_move_file_create_failure_is_total(fake_github: FakeGitHub) -> None:
    client = _client(fake_github)
    fake_github.force("PUT", "/repos/octo/demo/contents/a/c.txt", 500)

    with pytest.raises(GitHubError) as excinfo:
        client.move_file(
            "octo", "demo", "a/b.txt", "a/c.txt", fake_github.sha("a/b.txt"), "bee\n", message="mv"
        )

    assert not isinstance(excinfo.value, PartialFailure)
    assert [method for method, _ in fake_github.calls] == ["PUT"]
    assert "a/c.txt" not in fake_github.files


def test_move_file_commits_binary_content_unchanged(fake_github: FakeGitHub) -> None:
    fake_github.files["img/logo.png"] = PNG_BYTES
    client = _client(fake_github)
    entry = client.fetch_file("octo", "demo", "img/logo.png")

    client.move_file(
        "octo", "demo", "img/logo.png", "img/icon.png", entry.sha, entry.data, message="mv"
    )

    put_body = next(body for body in fake_github.bodies if "content" in body)
    assert base64.b64decode(put_body["content"]) == PNG_BYTES
    assert fake_github.files["img/icon.png"] == PNG_BYTES
    assert "img/logo.png" not in fake_github.files
