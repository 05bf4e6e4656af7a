"""Application state controller sequencing GitHub, model and Drive operations."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import asdict
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional, Sequence

from .auth import Authenticator, EnvironmentAuthenticator
from .config import GitMindConfig
from .drive import DRIVE_SCOPES, DriveClient
from .errors import (
    AIError,
    DownloadError,
    GitMindError,
    InvalidStateError,
    NotFound,
    PartialFailure,
)
from .github import GitHubClient
from .llm import AIClient, LLMRunner
from .local_files import load_local_files
from .logging import get_logger
from .models import (
    AnalysisResult,
    AppStatus,
    CloneReport,
    CommitResult,
    ConversionResult,
    FileAnswer,
    FileEntry,
    ProjectLog,
    Repository,
    TreeItem,
)
from .prompting.builder import DocumentBuilder
from .stores import HistoryStore, JsonFileStore, MemoryStore, TokenStore

NO_README_TEXT = "No README found for this project."
FILE_LOAD_FAILED_TEXT = "Could not load this file. The download link may have expired."
ASK_FAILED_TEXT = "The model could not answer this question: {error}"

GitHubFactory = Callable[[Optional[str]], GitHubClient]
DriveFactory = Callable[[str], DriveClient]

_IMPORT_STATES = {AppStatus.IDLE, AppStatus.READY, AppStatus.ERROR}


class AppController:
    """Owns UI state and runs one logical operation at a time.

    Status flows ``IDLE -> LOADING_REPO -> ANALYZING -> READY`` with ``ERROR``
    reachable from the loading phases. ``CLONING``, ``CONVERTING``,
    ``UPLOADING`` and ``COMMITTING`` start from ``READY`` and always return
    there.
    """

    def __init__(
        self,
        *,
        github_factory: GitHubFactory | None = None,
        ai: AIClient | None = None,
        drive_factory: DriveFactory | None = None,
        history: HistoryStore | None = None,
        token_store: TokenStore | None = None,
        authenticator: Authenticator | None = None,
    ) -> None:
        shared_store = MemoryStore()
        self._github_factory = github_factory or (lambda token: GitHubClient(token))
        self.ai = ai or AIClient()
        self._drive_factory = drive_factory or (lambda token: DriveClient(token))
        self.history_store = history or HistoryStore(shared_store)
        self.token_store = token_store or TokenStore(shared_store)
        self.authenticator = authenticator or EnvironmentAuthenticator()
        self.documents = DocumentBuilder()
        self.logger = get_logger("controller")

        self.status = AppStatus.IDLE
        self.error: Optional[str] = None
        self.repo: Optional[Repository] = None
        self.files: List[FileEntry] = []
        self.current_path = ""
        self.selected_file: Optional[FileEntry] = None
        self.file_content = ""
        self.analysis: Optional[AnalysisResult] = None
        self.answer: Optional[FileAnswer] = None
        self.conversion: Optional[ConversionResult] = None

    @classmethod
    def from_config(cls, config: GitMindConfig) -> "AppController":
        """Build a controller wired to real clients and file-backed state."""
        state_file = config.history.state_file or config.root / ".gitmind" / "state.json"
        store = JsonFileStore(Path(state_file))
        github_cfg = config.github
        drive_cfg = config.drive
        llm_cfg = config.llm
        runner_kwargs: Dict[str, Any] = {
            "model": llm_cfg.model,
            "base_url": llm_cfg.base_url,
            "max_tokens": llm_cfg.max_tokens,
        }
        if llm_cfg.api_key:
            runner_kwargs["api_key"] = llm_cfg.api_key
        if llm_cfg.temperature is not None:
            runner_kwargs["temperature"] = llm_cfg.temperature
        if llm_cfg.request_timeout is not None:
            runner_kwargs["request_timeout"] = llm_cfg.request_timeout
        return cls(
            github_factory=lambda token: GitHubClient(
                token,
                api_url=github_cfg.api_url,
                raw_url=github_cfg.raw_url,
                request_timeout=github_cfg.request_timeout,
            ),
            ai=AIClient(LLMRunner(**runner_kwargs)),
            drive_factory=lambda token: DriveClient(
                token,
                api_url=drive_cfg.api_url,
                upload_url=drive_cfg.upload_url,
                request_timeout=drive_cfg.request_timeout,
            ),
            history=HistoryStore(store, limit=config.history.limit),
            token_store=TokenStore(store),
        )

    # ------------------------------------------------------------------
    # Import

    def import_repository(self, identifier: str) -> Repository:
        """Load metadata, root listing, README and analysis for a repository."""
        self._require_status(_IMPORT_STATES, "import a repository")
        self._clear_repo_state()
        self.error = None
        self._set_status(AppStatus.LOADING_REPO)
        self.logger.info("Importing repository %s", identifier.strip())
        try:
            client = self._github()
            repo = client.fetch_repo_info(identifier)
            self.repo = repo
            files = client.fetch_directory(repo.owner, repo.name)
            self.files = files
            readme_text = self._fetch_readme(client, files)

            self._set_status(AppStatus.ANALYZING)
            self.analysis = self.ai.analyze_project(repo, readme_text)
            self.history_store.record(repo)
        except Exception as exc:
            self._fail(exc)
            raise
        self._set_status(AppStatus.READY)
        self.logger.info("Repository %s ready (%d root entries)", repo.full_name, len(files))
        return repo

    def import_local_files(self, paths: Iterable[str | Path]) -> List[FileEntry]:
        """Replace the listing with files read from local disk."""
        self._require_status(_IMPORT_STATES, "import local files")
        self._clear_repo_state()
        self.error = None
        self._set_status(AppStatus.LOADING_REPO)
        try:
            entries = load_local_files(paths)
        except Exception as exc:
            self._fail(exc)
            raise
        self.files = entries
        self._set_status(AppStatus.READY)
        self.logger.info("Loaded %d local file(s)", len(entries))
        return entries

    def import_drive_file(self, file_id: str) -> FileEntry:
        """Load a single Google Drive file as an inline-content entry."""
        self._require_status(_IMPORT_STATES, "import a Drive file")
        self._clear_repo_state()
        self.error = None
        self._set_status(AppStatus.LOADING_REPO)
        try:
            drive = self._drive()
            meta = drive.get_file(file_id)
            content = drive.download_file(file_id)
        except Exception as exc:
            self._fail(exc)
            raise
        entry = FileEntry(name=meta.name, path=meta.name, type="file", content=content)
        self.files = [entry]
        self._set_status(AppStatus.READY)
        self.select_file(entry)
        return entry

    # ------------------------------------------------------------------
    # Browsing and questions

    def open_directory(self, path: str = "") -> List[FileEntry]:
        self._require_status({AppStatus.READY}, "open a directory")
        repo = self._require_repo()
        self.files = self._github().fetch_directory(repo.owner, repo.name, path)
        self.current_path = path.strip("/")
        return self.files

    def select_file(self, entry: FileEntry | str) -> str:
        """Show a file's content; directories are ignored."""
        self._require_status({AppStatus.READY}, "select a file")
        target = self._resolve_entry(entry)
        if target.is_dir:
            return self.file_content
        self.selected_file = target
        self.answer = None
        if target.content is not None:
            self.file_content = target.content
        elif target.download_url:
            try:
                self.file_content = self._github().fetch_raw(target.download_url)
            except DownloadError as exc:
                self.logger.warning("Could not load %s: %s", target.path, exc)
                self.file_content = FILE_LOAD_FAILED_TEXT
        else:
            self.file_content = ""
        return self.file_content

    def ask_about_selected(self, question: str) -> Optional[FileAnswer]:
        if not self.selected_file or not self.file_content or not question.strip():
            return None
        self._require_status({AppStatus.READY}, "ask about a file")
        try:
            self.answer = self.ai.ask_about_file(
                self.selected_file.name, self.file_content, question.strip()
            )
        except AIError as exc:
            self.logger.warning("Question about %s failed: %s", self.selected_file.path, exc)
            self.answer = FileAnswer(answer=ASK_FAILED_TEXT.format(error=exc))
        return self.answer

    # ------------------------------------------------------------------
    # Conversion

    def convert_project(self) -> ConversionResult:
        with self._transient(AppStatus.CONVERTING):
            name = self.repo.full_name if self.repo else "local project"
            self.conversion = self.ai.convert_to_react_php(name, self.files, self.analysis)
            self.logger.info(
                "Conversion produced %d endpoint(s) and %d file(s)",
                len(self.conversion.api_endpoints),
                len(self.conversion.generated_files),
            )
            return self.conversion

    # ------------------------------------------------------------------
    # Writes

    def commit_proposed_change(self, message: str | None = None) -> CommitResult:
        """Commit the model's proposed content for the selected file."""
        with self._transient(AppStatus.COMMITTING):
            repo = self._require_repo()
            selected = self.selected_file
            proposed = self.answer.proposed_content if self.answer else None
            if selected is None or proposed is None:
                raise InvalidStateError("There is no proposed change to commit.")
            result = self._github().update_file(
                repo.owner,
                repo.name,
                selected.path,
                proposed,
                message=message or f"Update {selected.path} with AI suggestion",
                sha=selected.sha,
            )
            selected.sha = result.sha or selected.sha
            selected.content = proposed
            selected.data = None
            self.file_content = proposed
            self._refresh_listing()
            return result

    def save_file(
        self, path: str, content: str, *, message: str, sha: str | None = None
    ) -> CommitResult:
        """Create a file, or update it when ``sha`` is its current blob sha."""
        with self._transient(AppStatus.COMMITTING):
            repo = self._require_repo()
            result = self._github().update_file(
                repo.owner, repo.name, path, content, message=message, sha=sha
            )
            self._refresh_listing()
            return result

    def delete_path(self, entry: FileEntry | str, *, message: str | None = None) -> CommitResult:
        with self._transient(AppStatus.COMMITTING):
            repo = self._require_repo()
            target = self._resolve_entry(entry)
            sha = target.sha or self._github().fetch_file(repo.owner, repo.name, target.path).sha
            result = self._github().delete_file(
                repo.owner,
                repo.name,
                target.path,
                sha or "",
                message=message or f"Delete {target.path}",
            )
            if self.selected_file and self.selected_file.path == target.path:
                self.selected_file = None
                self.file_content = ""
                self.answer = None
            self._refresh_listing()
            return result

    def move_path(
        self, entry: FileEntry | str, new_path: str, *, message: str | None = None
    ) -> CommitResult:
        """Rename or move a file (create at ``new_path``, then delete the old path)."""
        with self._transient(AppStatus.COMMITTING):
            repo = self._require_repo()
            target = self._resolve_entry(entry)
            if target.is_dir:
                raise InvalidStateError("Only files can be moved.")
            new_path = new_path.strip("/")
            client = self._github()
            content, sha = self._current_content(client, repo, target)
            try:
                result = client.move_file(
                    repo.owner,
                    repo.name,
                    target.path,
                    new_path,
                    sha,
                    content,
                    message=message or f"Move {target.path} to {new_path}",
                )
            except PartialFailure:
                # Both paths exist now; show that in the listing.
                self._refresh_listing()
                raise
            if self.selected_file and self.selected_file.path == target.path:
                self.selected_file = FileEntry(
                    name=new_path.rsplit("/", 1)[-1],
                    path=new_path,
                    type="file",
                    sha=result.sha,
                )
            self._refresh_listing()
            return result

    # ------------------------------------------------------------------
    # Google Drive

    def clone_to_drive(self, folder_name: str | None = None) -> CloneReport:
        """Copy the whole repository tree into a new Drive folder."""
        with self._transient(AppStatus.CLONING):
            repo = self._require_repo()
            drive = self._drive()
            client = self._github()
            tree = client.fetch_full_tree(repo.owner, repo.name, repo.default_branch)
            root_id = drive.create_folder(folder_name or f"{repo.name} (GitHub)")
            self.logger.info(
                "Cloning %d tree item(s) of %s into Drive folder %s",
                len(tree),
                repo.full_name,
                root_id,
            )

            def fetch(item: TreeItem) -> str | bytes:
                url = client.raw_file_url(repo.owner, repo.name, repo.default_branch, item.path)
                data = client.fetch_raw_bytes(url)
                try:
                    return data.decode("utf-8")
                except UnicodeDecodeError:
                    return data

            report = archive_tree(tree, drive, root_id, fetch, logger=self.logger)
            self.logger.info(
                "Drive clone finished: %d folder(s), %d file(s), %d skipped",
                report.folders_created,
                report.files_uploaded,
                len(report.skipped),
            )
            return report

    def upload_conversion_to_drive(self, folder_name: str | None = None) -> CloneReport:
        """Upload the generated scaffold and its setup guide into a new Drive folder."""
        with self._transient(AppStatus.UPLOADING):
            conversion = self.conversion
            if conversion is None:
                raise InvalidStateError("Convert the project before uploading it.")
            drive = self._drive()
            base = self.repo.name if self.repo else "project"
            root_id = drive.create_folder(folder_name or f"{base} (React + PHP)")
            report = CloneReport(folder_id=root_id)
            folders: Dict[str, str] = {"": root_id}
            documents = [(item.path.strip("/"), item.content) for item in conversion.generated_files]
            documents.append(("SETUP.md", self.documents.render_setup(conversion)))
            for path, content in documents:
                if not path:
                    continue
                parent_path, _, name = path.rpartition("/")
                parent_id = _ensure_folder(parent_path, folders, drive, report)
                drive.upload_file(name, content, parent_id)
                report.files_uploaded += 1
            return report

    # ------------------------------------------------------------------
    # Token, history, reset

    def set_token(self, token: str | None) -> None:
        self.token_store.set(token.strip() if token else None)

    @property
    def history(self) -> List[ProjectLog]:
        return self.history_store.entries

    def clear_history(self) -> None:
        self.history_store.clear()

    def reset(self) -> None:
        self._clear_repo_state()
        self.error = None
        self._set_status(AppStatus.IDLE)

    def snapshot(self) -> Dict[str, Any]:
        """Serialisable view of the controller state."""
        return {
            "status": self.status.value,
            "error": self.error,
            "repo": asdict(self.repo) if self.repo else None,
            "files": [_entry_view(entry) for entry in self.files],
            "current_path": self.current_path,
            "selected_file": _entry_view(self.selected_file) if self.selected_file else None,
            "file_content": self.file_content,
            "analysis": asdict(self.analysis) if self.analysis else None,
            "answer": asdict(self.answer) if self.answer else None,
            "conversion": asdict(self.conversion) if self.conversion else None,
            "history": [asdict(entry) for entry in self.history],
            "has_token": self.token_store.get() is not None,
        }

    # ------------------------------------------------------------------
    # Helpers

    def _github(self) -> GitHubClient:
        return self._github_factory(self.token_store.get())

    def _drive(self) -> DriveClient:
        token = self.authenticator.acquire_token(DRIVE_SCOPES)
        return self._drive_factory(token)

    def _fetch_readme(self, client: GitHubClient, files: Sequence[FileEntry]) -> str:
        readme = next((entry for entry in files if entry.name.lower() == "readme.md"), None)
        if readme is None or not readme.download_url:
            self.logger.debug("No README in repository root")
            return NO_README_TEXT
        try:
            return client.fetch_raw(readme.download_url)
        except DownloadError as exc:
            self.logger.warning("README download failed: %s", exc)
            return NO_README_TEXT

    def _current_content(
        self, client: GitHubClient, repo: Repository, target: FileEntry
    ) -> tuple[str | bytes, str]:
        if target.sha and target.data is not None:
            return target.data, target.sha
        if target.sha and target.content is not None:
            return target.content, target.sha
        remote = client.fetch_file(repo.owner, repo.name, target.path)
        if remote.sha is None:
            raise NotFound(f"GitHub returned no sha for {target.path}.")
        if remote.data is not None:
            return remote.data, remote.sha
        if remote.download_url:
            return client.fetch_raw_bytes(remote.download_url), remote.sha
        return b"", remote.sha

    def _refresh_listing(self) -> None:
        repo = self.repo
        if repo is None:
            return
        try:
            self.files = self._github().fetch_directory(repo.owner, repo.name, self.current_path)
        except GitMindError as exc:
            self.logger.warning("Could not refresh listing of %r: %s", self.current_path, exc)

    def _resolve_entry(self, entry: FileEntry | str) -> FileEntry:
        if isinstance(entry, FileEntry):
            return entry
        path = entry.strip("/")
        for candidate in self.files:
            if candidate.path == path:
                return candidate
        if self.selected_file and self.selected_file.path == path:
            return self.selected_file
        if self.repo is None:
            raise NotFound(f"{path} is not among the loaded files.")
        # Outside the current listing: ask GitHub for sha and content.
        return self._github().fetch_file(self.repo.owner, self.repo.name, path)

    def _require_repo(self) -> Repository:
        if self.repo is None:
            raise InvalidStateError("Import a GitHub repository first.")
        return self.repo

    def _require_status(self, allowed: Iterable[AppStatus], action: str) -> None:
        if self.status not in set(allowed):
            raise InvalidStateError(f"Cannot {action} while {self.status.value}.")

    @contextmanager
    def _transient(self, status: AppStatus) -> Iterator[None]:
        self._require_status({AppStatus.READY}, status.value.lower())
        self.error = None
        self._set_status(status)
        try:
            yield
        except Exception as exc:
            self.error = _user_message(exc)
            self._log_exception(f"{status.value.title()} failed", exc)
            raise
        finally:
            self._set_status(AppStatus.READY)

    def _fail(self, exc: BaseException) -> None:
        self._clear_repo_state()
        self.error = _user_message(exc)
        self._log_exception("Import failed", exc)
        self._set_status(AppStatus.ERROR)

    def _clear_repo_state(self) -> None:
        self.repo = None
        self.files = []
        self.current_path = ""
        self.selected_file = None
        self.file_content = ""
        self.analysis = None
        self.answer = None
        self.conversion = None

    def _set_status(self, status: AppStatus) -> None:
        if status is not self.status:
            self.logger.debug("Status %s -> %s", self.status.value, status.value)
        self.status = status

    def _log_exception(self, message: str, exc: BaseException) -> None:
        if isinstance(exc, PartialFailure):
            self.logger.error("%s: %s", message, exc)
        elif self.logger.isEnabledFor(logging.DEBUG):
            self.logger.exception("%s: %s", message, exc)
        else:
            self.logger.error("%s: %s", message, exc)


def archive_tree(
    tree: Sequence[TreeItem],
    drive: DriveClient,
    root_id: str,
    fetch_content: Callable[[TreeItem], str | bytes],
    *,
    logger: logging.Logger | None = None,
) -> CloneReport:
    """Mirror ``tree`` under ``root_id``, one item at a time in listing order.

    Each ``tree`` item becomes a folder registered under its full path before
    later items are processed; each ``blob`` is uploaded into its parent's
    folder, or the root when the parent was never registered. Blobs fetched as
    ``bytes`` are uploaded untouched. A blob whose content cannot be
    downloaded is skipped.
    """
    log = logger or get_logger("controller")
    folders: Dict[str, str] = {"": root_id}
    report = CloneReport(folder_id=root_id)
    for item in tree:
        parent_path, _, name = item.path.rpartition("/")
        parent_id = folders.get(parent_path, root_id)
        if item.type == "tree":
            folders[item.path] = drive.create_folder(name, parent_id)
            report.folders_created += 1
            continue
        if item.type != "blob":
            continue
        try:
            content = fetch_content(item)
        except DownloadError as exc:
            log.warning("Skipping %s: %s", item.path, exc)
            report.skipped.append(item.path)
            continue
        drive.upload_file(name, content, parent_id)
        report.files_uploaded += 1
    return report


def _ensure_folder(
    path: str, folders: Dict[str, str], drive: DriveClient, report: CloneReport
) -> str:
    if path in folders:
        return folders[path]
    parent_path, _, name = path.rpartition("/")
    parent_id = _ensure_folder(parent_path, folders, drive, report)
    folders[path] = drive.create_folder(name, parent_id)
    report.folders_created += 1
    return folders[path]


def _entry_view(entry: FileEntry) -> Dict[str, Any]:
    view = asdict(entry)
    view.pop("data", None)
    return view


def _user_message(exc: BaseException) -> str:
    if isinstance(exc, GitMindError):
        return exc.user_message
    return str(exc) or exc.__class__.__name__


__all__ = ["AppController", "archive_tree"]
