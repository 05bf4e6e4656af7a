"""Tests for the application state controller."""

from __future__ import annotations

from pathlib import Path

import pytest

from gitmind.auth import StaticTokenAuthenticator
from gitmind.controller import (
    FILE_LOAD_FAILED_TEXT,
    NO_README_TEXT,
    AppController,
    archive_tree,
)
from gitmind.drive import DriveClient
from gitmind.errors import (
    AIError,
    AuthError,
    ConflictError,
    DownloadError,
    DriveError,
    InvalidStateError,
    NotFound,
    ParseError,
    PartialFailure,
)
from gitmind.github import GitHubClient
from gitmind.llm import AIClient, LLMRunner
from gitmind.models import AppStatus, TreeItem
from gitmind.stores import HistoryStore, TokenStore


PNG_BYTES = b"\x89PNG\r\n\x1a\n\x00\xff\xfe"


def _ready(controller: AppController) -> AppController:
    controller.import_repository("https://github.com/octo/demo")
    return controller


def test_import_repository_loads_everything(controller, model) -> None:
    repo = controller.import_repository("github.com/octo/demo")

    assert controller.status is AppStatus.READY
    assert controller.error is None
    assert repo.full_name == "octo/demo"
    assert [entry.name for entry in controller.files] == ["a", "README.md", "app.py"]
    assert controller.analysis is not None
    assert controller.analysis.summary == "A demo project"
    assert "# Demo" in model.calls[0].prompt
    assert [entry.id for entry in controller.history] == ["octo/demo"]


def test_import_failure_clears_state_and_sets_error(controller) -> None:
    _ready(controller)

    with pytest.raises(NotFound):
        controller.import_repository("octo/missing")

    assert controller.status is AppStatus.ERROR
    assert controller.repo is None
    assert controller.files == []
    assert controller.analysis is None
    assert "octo/missing" in controller.error
    assert [entry.id for entry in controller.history] == ["octo/demo"]


def test_import_with_unparseable_identifier(controller, fake_github) -> None:
    with pytest.raises(ParseError):
        controller.import_repository("not a valid thing!!")

    assert controller.status is AppStatus.ERROR
    assert "github.com/owner/repo" in controller.error
    assert fake_github.calls == []


def test_import_without_readme_uses_placeholder(controller, fake_github, model) -> None:
    del fake_github.files["README.md"]

    _ready(controller)

    assert NO_README_TEXT in model.calls[0].prompt
    assert controller.status is AppStatus.READY


def test_import_with_broken_readme_uses_placeholder(controller, fake_github, model) -> None:
    fake_github.broken_raw.add("README.md")

    _ready(controller)

    assert NO_README_TEXT in model.calls[0].prompt


def test_analysis_failure_moves_to_error(controller, model) -> None:
    model.failures["analysis"] = AIError("model overloaded")

    with pytest.raises(AIError):
        controller.import_repository("octo/demo")

    assert controller.status is AppStatus.ERROR
    assert controller.error == "model overloaded"
    assert controller.history == []


def test_importing_twice_keeps_one_history_entry(controller) -> None:
    _ready(controller)
    first = controller.history[0].timestamp
    _ready(controller)

    history = controller.history
    assert len(history) == 1
    assert history[0].id == "octo/demo"
    assert history[0].timestamp >= first


def test_open_directory_and_select_file(controller) -> None:
    _ready(controller)

    entries = controller.open_directory("a")
    content = controller.select_file("a/b.txt")

    assert [entry.name for entry in entries] == ["nested", "b.txt"]
    assert controller.current_path == "a"
    assert content == "bee\n"
    assert controller.selected_file.path == "a/b.txt"


def test_selecting_a_directory_is_ignored(controller) -> None:
    _ready(controller)
    directory = controller.files[0]

    controller.select_file(directory)

    assert controller.selected_file is None


def test_select_file_download_failure_shows_message(controller, fake_github) -> None:
    _ready(controller)
    fake_github.broken_raw.add("app.py")

    content = controller.select_file("app.py")

    assert content == FILE_LOAD_FAILED_TEXT
    assert controller.status is AppStatus.READY


def test_select_file_outside_the_listing_fetches_it(controller, fake_github) -> None:
    _ready(controller)

    content = controller.select_file("a/b.txt")

    assert content == "bee\n"
    assert controller.current_path == ""
    assert controller.selected_file.sha == fake_github.sha("a/b.txt")


def test_select_unknown_path_raises_not_found(controller) -> None:
    _ready(controller)

    with pytest.raises(NotFound):
        controller.select_file("nope/missing.txt")

    assert controller.selected_file is None
    assert controller.file_content == ""


def test_operations_require_an_imported_repository(controller) -> None:
    with pytest.raises(InvalidStateError):
        controller.open_directory("a")
    with pytest.raises(InvalidStateError):
        controller.convert_project()

    assert controller.status is AppStatus.IDLE


def test_ask_about_selected_file(controller, model) -> None:
    _ready(controller)
    controller.select_file("app.py")

    answer = controller.ask_about_selected("What does this do?")

    assert answer is not None
    assert answer.answer == "It prints hello."
    assert "print('hello')" in model.calls[-1].prompt


def test_ask_without_question_or_file_is_a_no_op(controller, model) -> None:
    _ready(controller)

    assert controller.ask_about_selected("anything") is None
    controller.select_file("app.py")
    assert controller.ask_about_selected("   ") is None
    assert len(model.calls) == 1


def test_ask_failure_becomes_an_answer(controller, model) -> None:
    _ready(controller)
    controller.select_file("app.py")
    model.failures["file_answer"] = AIError("quota exhausted")

    answer = controller.ask_about_selected("Why?")

    assert "quota exhausted" in answer.answer
    assert answer.proposed_content is None


def test_commit_proposed_change_writes_file(controller, fake_github, model) -> None:
    _ready(controller)
    controller.select_file("app.py")
    model.replies["file_answer"] = {"answer": "Done.", "proposed_content": "print('bye')\n"}
    controller.ask_about_selected("Say bye instead")

    result = controller.commit_proposed_change()

    assert fake_github.files["app.py"] == "print('bye')\n"
    assert result.sha == fake_github.sha("app.py")
    assert controller.file_content == "print('bye')\n"
    assert controller.status is AppStatus.READY
    assert fake_github.bodies[-1]["message"] == "Update app.py with AI suggestion"


def test_commit_without_proposal_is_rejected(controller) -> None:
    _ready(controller)
    controller.select_file("app.py")
    controller.ask_about_selected("What is this?")

    with pytest.raises(InvalidStateError):
        controller.commit_proposed_change()

    assert controller.status is AppStatus.READY
    assert controller.error == "There is no proposed change to commit."


def test_save_file_with_stale_sha_conflicts(controller, fake_github) -> None:
    _ready(controller)

    with pytest.raises(ConflictError):
        controller.save_file("app.py", "x", message="overwrite", sha="stale")

    assert fake_github.files["app.py"] == "print('hello')\n"
    assert controller.status is AppStatus.READY


def test_delete_path_removes_file_and_refreshes(controller, fake_github) -> None:
    _ready(controller)
    controller.select_file("app.py")

    controller.delete_path("app.py")

    assert "app.py" not in fake_github.files
    assert "app.py" not in [entry.name for entry in controller.files]
    assert controller.selected_file is None


def test_move_path_renames_file(controller, fake_github) -> None:
    _ready(controller)
    controller.open_directory("a")

    controller.move_path("a/b.txt", "a/c.txt")

    names = [entry.name for entry in controller.files]
    assert "c.txt" in names
    assert "b.txt" not in names
    assert fake_github.files["a/c.txt"] == "bee\n"


def test_move_path_partial_failure_is_reported(controller, fake_github) -> None:
    _ready(controller)
    controller.open_directory("a")
    fake_github.force("DELETE", "/repos/octo/demo/contents/a/b.txt", 500)

    with pytest.raises(PartialFailure):
        controller.move_path("a/b.txt", "a/c.txt")

    names = [entry.name for entry in controller.files]
    assert "b.txt" in names and "c.txt" in names
    assert "both paths" in controller.error
    assert controller.status is AppStatus.READY


def test_move_path_keeps_binary_content(controller, fake_github) -> None:
    fake_github.files["a/logo.png"] = PNG_BYTES
    _ready(controller)
    controller.open_directory("a")

    controller.move_path("a/logo.png", "a/icon.png")

    assert fake_github.files["a/icon.png"] == PNG_BYTES
    assert "a/logo.png" not in fake_github.files


def test_move_path_across_directories_refreshes_current_listing(controller, fake_github) -> None:
    _ready(controller)
    controller.open_directory("a")
    controller.select_file("a/b.txt")

    controller.move_path("a/b.txt", "b.txt")

    assert controller.current_path == "a"
    assert [entry.name for entry in controller.files] == ["nested"]
    assert controller.selected_file.path == "b.txt"
    assert controller.selected_file.sha == fake_github.sha("b.txt")
    controller.open_directory("")
    assert "b.txt" in [entry.name for entry in controller.files]


def test_convert_project_stores_result(controller) -> None:
    _ready(controller)

    result = controller.convert_project()

    assert controller.conversion is result
    assert result.api_endpoints[0].route == "/api/items"
    assert controller.status is AppStatus.READY


def test_clone_to_drive_mirrors_tree_in_order(controller, fake_drive) -> None:
    _ready(controller)

    report = controller.clone_to_drive()

    root = fake_drive.events[0]
    assert root["name"] == "demo (GitHub)"
    assert report.folder_id == root["id"]
    assert report.folders_created == 2
    assert report.files_uploaded == 4
    assert report.skipped == []
    uploads = {event["name"]: event for event in fake_drive.uploads()}
    assert uploads["README.md"]["parent"] == root["id"]
    assert uploads["b.txt"]["parent"] == fake_drive.folder_id("a")
    assert uploads["deep.txt"]["parent"] == fake_drive.folder_id("nested")
    assert uploads["deep.txt"]["content"] == "deep\n"
    assert controller.status is AppStatus.READY


def test_clone_to_drive_skips_unreadable_files(controller, fake_github, fake_drive) -> None:
    _ready(controller)
    fake_github.broken_raw.add("app.py")

    report = controller.clone_to_drive("Backup")

    assert fake_drive.events[0]["name"] == "Backup"
    assert report.skipped == ["app.py"]
    assert "app.py" not in [event["name"] for event in fake_drive.uploads()]


def test_clone_to_drive_uploads_binary_blobs_unchanged(controller, fake_github, fake_drive) -> None:
    fake_github.files["assets/blob.bin"] = PNG_BYTES
    _ready(controller)

    controller.clone_to_drive()

    uploads = {event["name"]: event for event in fake_drive.uploads()}
    assert uploads["blob.bin"]["content"] == PNG_BYTES
    assert uploads["blob.bin"]["content_type"] == "application/octet-stream"
    assert uploads["README.md"]["content_type"] == "text/plain"


def test_clone_to_drive_requires_drive_auth(fake_github, fake_drive, kv_store, model) -> None:
    controller = AppController(
        github_factory=lambda token: GitHubClient(token, transport=fake_github),
        ai=AIClient(LLMRunner(model="test-model", api_key=None, runner=model)),
        drive_factory=lambda token: DriveClient(token, transport=fake_drive),
        history=HistoryStore(kv_store),
        token_store=TokenStore(kv_store),
        authenticator=StaticTokenAuthenticator(None),
    )
    _ready(controller)

    with pytest.raises(AuthError):
        controller.clone_to_drive()

    assert fake_drive.events == []
    assert controller.status is AppStatus.READY


def test_archive_tree_creates_folders_before_their_files(fake_drive) -> None:
    drive = DriveClient("t", transport=fake_drive)
    tree = [
        TreeItem(path="a", type="tree", sha="1"),
        TreeItem(path="a/b.txt", type="blob", sha="2"),
        TreeItem(path="orphan/c.txt", type="blob", sha="3"),
    ]

    report = archive_tree(tree, drive, "root", lambda item: f"content of {item.path}")

    kinds = [(event["kind"], event["name"]) for event in fake_drive.events]
    assert kinds == [("folder", "a"), ("upload", "b.txt"), ("upload", "c.txt")]
    assert fake_drive.events[0]["parent"] == "root"
    assert fake_drive.events[1]["parent"] == fake_drive.events[0]["id"]
    assert fake_drive.events[2]["parent"] == "root"
    assert report.files_uploaded == 2


def test_archive_tree_records_skipped_downloads(fake_drive) -> None:
    drive = DriveClient("t", transport=fake_drive)
    tree = [TreeItem(path="x.txt", type="blob", sha="1"), TreeItem(path="y.txt", type="blob", sha="2")]

    def fetch(item: TreeItem) -> str:
        if item.path == "x.txt":
            raise DownloadError("gone")
        return "y"

    report = archive_tree(tree, drive, "root", fetch)

    assert report.skipped == ["x.txt"]
    assert [event["name"] for event in fake_drive.uploads()] == ["y.txt"]


def test_upload_conversion_to_drive(controller, fake_drive) -> None:
    _ready(controller)
    controller.convert_project()

    report = controller.upload_conversion_to_drive()

    root = fake_drive.events[0]
    assert root["name"] == "demo (React + PHP)"
    uploads = {event["name"]: event for event in fake_drive.uploads()}
    assert uploads["ItemsController.php"]["parent"] == fake_drive.folder_id("Controllers")
    assert uploads["SETUP.md"]["parent"] == root["id"]
    assert "composer install" in uploads["SETUP.md"]["content"]
    assert "`GET /api/items`" in uploads["SETUP.md"]["content"]
    assert report.folders_created == 2
    assert report.files_uploaded == 2


def test_upload_conversion_requires_a_conversion(controller) -> None:
    _ready(controller)

    with pytest.raises(InvalidStateError):
        controller.upload_conversion_to_drive()

    assert controller.status is AppStatus.READY


def test_import_local_files(controller, tmp_path: Path) -> None:
    (tmp_path / "main.ts").write_text("export const x = 1;\n", encoding="utf-8")

    entries = controller.import_local_files([tmp_path])
    content = controller.select_file("main.ts")

    assert [entry.path for entry in entries] == ["main.ts"]
    assert content == "export const x = 1;\n"
    assert controller.repo is None
    assert controller.status is AppStatus.READY


def test_import_drive_file(controller, fake_drive) -> None:
    fake_drive.drive_files["f1"] = ("notes.txt", "hello from drive")

    entry = controller.import_drive_file("f1")

    assert entry.name == "notes.txt"
    assert controller.selected_file is entry
    assert controller.file_content == "hello from drive"


def test_token_and_snapshot(controller) -> None:
    controller.set_token(None)
    assert controller.snapshot()["has_token"] is False

    controller.set_token("  ghp_new  ")
    snapshot = controller.snapshot()

    assert controller.token_store.get() == "ghp_new"
    assert snapshot["status"] == "IDLE"
    assert snapshot["has_token"] is True
    assert snapshot["repo"] is None


def test_reset_and_clear_history(controller) -> None:
    _ready(controller)

    controller.reset()
    controller.clear_history()

    assert controller.status is AppStatus.IDLE
    assert controller.repo is None
    assert controller.history == []


def test_clone_to_drive_aborts_on_upload_failure(controller, fake_drive) -> None:
    _ready(controller)
    fake_drive.fail_uploads_with = "Insufficient permissions for this file"

    with pytest.raises(DriveError):
        controller.clone_to_drive()

    assert len(fake_drive.uploads()) == 0
    assert controller.error == "Insufficient permissions for this file"
    assert controller.status is AppStatus.READY
