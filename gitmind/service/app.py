"""FastAPI application exposing the controller to a browser front end."""

from __future__ import annotations

import asyncio
from dataclasses import asdict
from typing import Any, Callable, Dict, List, Optional, TypeVar

from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ..config import load_config
from ..controller import AppController
from ..errors import (
    AuthError,
    ConfigError,
    ConflictError,
    Forbidden,
    GitMindError,
    InvalidStateError,
    NotFound,
    ParseError,
    PartialFailure,
    RateLimited,
)
from ..logging import configure_logging

T = TypeVar("T")

_STATUS_BY_ERROR: tuple[tuple[type[GitMindError], int], ...] = (
    (ParseError, 400),
    (ConfigError, 500),
    (NotFound, 404),
    (RateLimited, 429),
    (Forbidden, 403),
    (ConflictError, 409),
    (PartialFailure, 207),
    (InvalidStateError, 409),
    (AuthError, 401),
)


class ImportRequest(BaseModel):
    identifier: str


class LocalImportRequest(BaseModel):
    paths: List[str]


class DriveImportRequest(BaseModel):
    file_id: str


class DirectoryRequest(BaseModel):
    path: str = ""


class SelectRequest(BaseModel):
    path: str


class AskRequest(BaseModel):
    question: str


class CommitRequest(BaseModel):
    message: Optional[str] = None


class MoveRequest(BaseModel):
    path: str
    new_path: str
    message: Optional[str] = None


class DeleteRequest(BaseModel):
    path: str
    message: Optional[str] = None


class DriveRequest(BaseModel):
    folder_name: Optional[str] = None


class TokenRequest(BaseModel):
    token: Optional[str] = None


class CommitResponse(BaseModel):
    path: str
    sha: Optional[str] = None
    commit_sha: Optional[str] = None
    html_url: Optional[str] = None


class CloneResponse(BaseModel):
    folder_id: str
    folders_created: int
    files_uploaded: int
    skipped: List[str]


class HealthResponse(BaseModel):
    status: str


def _default_controller() -> AppController:
    return AppController.from_config(load_config())


def create_app(
    controller_factory: Callable[[], AppController] = _default_controller,
) -> FastAPI:
    """Create the FastAPI application around a single shared controller."""

    app = FastAPI(title="gitmind", version="0.1.0")
    controller = controller_factory()
    lock = asyncio.Lock()
    app.state.controller = controller
    app.state.lock = lock

    async def get_controller() -> AppController:
        return controller

    async def run(func: Callable[[], T]) -> T:
        # One logical operation at a time against the shared controller.
        async with lock:
            loop = asyncio.get_running_loop()
            return await loop.run_in_executor(None, func)

    async def run_then_snapshot(func: Callable[[], Any]) -> Dict[str, Any]:
        def call() -> Dict[str, Any]:
            func()
            return controller.snapshot()

        return await run(call)

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse(status="ok")

    @app.get("/state")
    async def state(ctrl: AppController = Depends(get_controller)) -> Dict[str, Any]:
        return await run(ctrl.snapshot)

    @app.post("/import")
    async def import_repository(
        payload: ImportRequest, ctrl: AppController = Depends(get_controller)
    ) -> Dict[str, Any]:
        return await run_then_snapshot(lambda: ctrl.import_repository(payload.identifier))

    @app.post("/local/import")
    async def import_local_files(
        payload: LocalImportRequest, ctrl: AppController = Depends(get_controller)
    ) -> Dict[str, Any]:
        return await run_then_snapshot(lambda: ctrl.import_local_files(payload.paths))

    @app.post("/drive/import")
    async def import_drive_file(
        payload: DriveImportRequest, ctrl: AppController = Depends(get_controller)
    ) -> Dict[str, Any]:
        return await run_then_snapshot(lambda: ctrl.import_drive_file(payload.file_id))

    @app.post("/directory")
    async def open_directory(
        payload: DirectoryRequest, ctrl: AppController = Depends(get_controller)
    ) -> Dict[str, Any]:
        return await run_then_snapshot(lambda: ctrl.open_directory(payload.path))

    @app.post("/select")
    async def select_file(
        payload: SelectRequest, ctrl: AppController = Depends(get_controller)
    ) -> Dict[str, Any]:
        return await run_then_snapshot(lambda: ctrl.select_file(payload.path))

    @app.post("/ask")
    async def ask(
        payload: AskRequest, ctrl: AppController = Depends(get_controller)
    ) -> Dict[str, Any]:
        return await run_then_snapshot(lambda: ctrl.ask_about_selected(payload.question))

    @app.post("/convert")
    async def convert(ctrl: AppController = Depends(get_controller)) -> Dict[str, Any]:
        return await run_then_snapshot(ctrl.convert_project)

    @app.post("/commit", response_model=CommitResponse)
    async def commit(
        payload: CommitRequest, ctrl: AppController = Depends(get_controller)
    ) -> CommitResponse:
        result = await run(lambda: ctrl.commit_proposed_change(payload.message))
        return CommitResponse(**asdict(result))

    @app.post("/move", response_model=CommitResponse)
    async def move(
        payload: MoveRequest, ctrl: AppController = Depends(get_controller)
    ) -> CommitResponse:
        result = await run(
            lambda: ctrl.move_path(payload.path, payload.new_path, message=payload.message)
        )
        return CommitResponse(**asdict(result))

    @app.post("/delete", response_model=CommitResponse)
    async def delete(
        payload: DeleteRequest, ctrl: AppController = Depends(get_controller)
    ) -> CommitResponse:
        result = await run(lambda: ctrl.delete_path(payload.path, message=payload.message))
        return CommitResponse(**asdict(result))

    @app.post("/drive/clone", response_model=CloneResponse)
    async def clone_to_drive(
        payload: DriveRequest, ctrl: AppController = Depends(get_controller)
    ) -> CloneResponse:
        report = await run(lambda: ctrl.clone_to_drive(payload.folder_name))
        return CloneResponse(**asdict(report))

    @app.post("/drive/upload-conversion", response_model=CloneResponse)
    async def upload_conversion(
        payload: DriveRequest, ctrl: AppController = Depends(get_controller)
    ) -> CloneResponse:
        report = await run(lambda: ctrl.upload_conversion_to_drive(payload.folder_name))
        return CloneResponse(**asdict(report))

    @app.post("/token")
    async def set_token(
        payload: TokenRequest, ctrl: AppController = Depends(get_controller)
    ) -> Dict[str, Any]:
        def store() -> Dict[str, Any]:
            ctrl.set_token(payload.token)
            return {"has_token": ctrl.token_store.get() is not None}

        return await run(store)

    @app.get("/history")
    async def history(ctrl: AppController = Depends(get_controller)) -> List[Dict[str, Any]]:
        return await run(lambda: [asdict(entry) for entry in ctrl.history])

    @app.delete("/history")
    async def clear_history(ctrl: AppController = Depends(get_controller)) -> Dict[str, Any]:
        await run(ctrl.clear_history)
        return {"status": "cleared"}

    @app.exception_handler(GitMindError)
    async def gitmind_error_handler(_: Request, exc: GitMindError) -> JSONResponse:
        content: Dict[str, Any] = {"detail": exc.user_message, "kind": exc.kind}
        if isinstance(exc, PartialFailure):
            content["old_path"] = exc.old_path
            content["new_path"] = exc.new_path
        return JSONResponse(status_code=_status_for(exc), content=content)

    @app.exception_handler(FileNotFoundError)
    async def file_not_found_handler(_: Request, exc: FileNotFoundError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"detail": str(exc), "kind": "not_found"})

    return app


def _status_for(exc: GitMindError) -> int:
    for error_type, status in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status
    return 502


def run_service(
    host: str = "127.0.0.1", port: int = 8000, *, verbose: bool = False
) -> None:  # pragma: no cover - integration path
    import uvicorn

    config = load_config()
    configure_logging(verbose=verbose, log_file=config.log_file, server=True)
    app = create_app(lambda: AppController.from_config(config))
    # log_config=None keeps the handlers installed above.
    uvicorn.run(app, host=host, port=port, log_config=None)
