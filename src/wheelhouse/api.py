# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Read-only PEP-503 simple index over HTTP.

Endpoints:
- GET  /                          -> landing page
- GET  /simple/                   -> project list
- GET  /simple/{project}/         -> archive links of one project
- GET  /simple/{project}/{file}   -> archive download
- POST /rebuild                   -> enqueue a manual rebuild trigger

Every request reads one snapshot from the store and answers from it only.
"""

import logging

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import FileResponse, HTMLResponse, JSONResponse

from wheelhouse.index import IndexSnapshot, IndexStore, UnknownFileError, UnknownProjectError
from wheelhouse.normalize import normalize_name
from wheelhouse.render import render_homepage, render_project, render_root
from wheelhouse.triggers import TriggerEvent, TriggerQueue, TriggerQueueClosedError

logger = logging.getLogger(__name__)

MANUAL_TRIGGER_SOURCE: str = "http"


def create_app(store: IndexStore, triggers: TriggerQueue | None = None) -> FastAPI:
    """Build the HTTP application.

    Args:
        store: Index store read by every request.
        triggers: Queue receiving manual rebuild requests; ``POST /rebuild``
            answers 503 when omitted.

    Returns:
        Configured FastAPI application.
    """
    app = FastAPI(title="Wheelhouse", description="Local simple package index")
    app.state.store = store
    app.state.triggers = triggers

    @app.get("/", response_class=HTMLResponse)
    def homepage() -> str:
        return render_homepage()

    @app.get("/simple/", response_class=HTMLResponse)
    def simple_root(request: Request) -> str:
        snapshot = _snapshot(request)
        return render_root(snapshot.list_projects())

    @app.get("/simple/{project}/", response_class=HTMLResponse)
    def simple_project(project: str, request: Request) -> str:
        snapshot = _snapshot(request)
        normalized_name = normalize_name(project)
        try:
            entry = snapshot.get_project(normalized_name)
        except UnknownProjectError:
            logger.info(f"Unknown project requested (project={project})")
            raise HTTPException(status_code=404, detail="Unknown project")
        return render_project(
            normalized_name,
            entry.canonical_name,
            [path.name for path in entry.files],
        )

    @app.get("/simple/{project}/{file_name}")
    def simple_file(project: str, file_name: str, request: Request) -> FileResponse:
        snapshot = _snapshot(request)
        try:
            path = snapshot.resolve_file(normalize_name(project), file_name)
        except UnknownProjectError:
            logger.info(f"Unknown project requested (project={project})")
            raise HTTPException(status_code=404, detail="Unknown project")
        except UnknownFileError:
            logger.info(f"Unknown file requested (project={project} file={file_name})")
            raise HTTPException(status_code=404, detail="Unknown file")
        if not path.is_file():
            logger.warning(f"Indexed file no longer on disk (path={path})")
            raise HTTPException(status_code=404, detail="Unknown file")
        logger.info(f"Serving archive (path={path})")
        return FileResponse(
            path, media_type="application/octet-stream", filename=path.name
        )

    @app.post("/rebuild", status_code=202)
    def rebuild(request: Request) -> JSONResponse:
        queue: TriggerQueue | None = request.app.state.triggers
        if queue is None:
            raise HTTPException(status_code=503, detail="Rebuilds are not accepted")
        try:
            queue.put(TriggerEvent(source=MANUAL_TRIGGER_SOURCE))
        except TriggerQueueClosedError:
            logger.warning("Manual rebuild requested after trigger queue closed")
            raise HTTPException(status_code=503, detail="Rebuilds are not accepted")
        logger.info("Manual rebuild queued")
        return JSONResponse(
            status_code=202, content={"queued": True, "source": MANUAL_TRIGGER_SOURCE}
        )

    return app


def _snapshot(request: Request) -> IndexSnapshot:
    store: IndexStore = request.app.state.store
    return store.snapshot()
