import logging
from dataclasses import asdict
from typing import Any, Dict, List

from fastapi import Depends, FastAPI, HTTPException
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from weread_sync.core.config import Settings, load_settings
from weread_sync.core.errors import ConfigurationError, PersistenceFailure
from weread_sync.core.obsidian import NotebookFileManager
from weread_sync.core.renderer import Renderer
from weread_sync.core.sync import BookPayload, SyncService
from weread_sync.integrations.vault import VaultStorage

logger = logging.getLogger(__name__)

app = FastAPI()

def get_settings() -> Settings:
    try:
        return load_settings()
    except ConfigurationError as e:
        raise HTTPException(status_code=500, detail=str(e))

def build_service(settings: Settings) -> SyncService:
    """Wires storage, renderer and file manager for one sync pass."""
    file_manager = NotebookFileManager(
        storage=VaultStorage(settings.vault_dir),
        renderer=Renderer(settings.template_path),
        settings=settings,
    )
    return SyncService(file_manager, daily_notes=settings.daily_notes)

class BookPayloadModel(BaseModel):
    notebook: Dict[str, Any]
    highlights: Dict[str, Any] = {}
    reviews: Dict[str, Any] = {}

class SyncRequest(BaseModel):
    books: List[BookPayloadModel]
    force: bool = False

@app.post("/api/sync")
async def sync_books(request: SyncRequest, settings: Settings = Depends(get_settings)):
    """Syncs the posted payloads into the vault. Failed books are listed, not raised."""
    try:
        service = build_service(settings)
        report = await service.sync(
            [BookPayload(b.notebook, b.highlights, b.reviews) for b in request.books],
            force=request.force,
        )
    except (ConfigurationError, PersistenceFailure) as e:
        logger.error(f"Sync aborted: {e}")
        raise HTTPException(status_code=500, detail=str(e))

    return JSONResponse({
        "created": report.count("created"),
        "updated": report.count("updated"),
        "skipped": report.count("skipped"),
        "failed": len(report.failures),
        "results": [asdict(r) for r in report.results],
    })

@app.get("/api/notebooks")
async def list_notebooks(settings: Settings = Depends(get_settings)):
    """Lists the notes already synced into the vault."""
    try:
        files = await build_service(settings).file_manager.get_notebook_files()
    except (ConfigurationError, PersistenceFailure) as e:
        raise HTTPException(status_code=500, detail=str(e))
    return JSONResponse({"notebooks": [asdict(f) for f in files]})

if __name__ == "__main__":
    import uvicorn
    logging.basicConfig(level=logging.INFO)
    print("Starting server at http://127.0.0.1:8123")
    uvicorn.run(app, host="127.0.0.1", port=8123)
