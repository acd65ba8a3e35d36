"""Version history API routes."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel
from fastapi import APIRouter, HTTPException, Query

from ...app import IApplication


class CaptureRequest(BaseModel):
    """Request model for capturing a version."""

    content_type: str
    content_ref: str
    content: str
    event_type: str
    summary: str
    metadata: dict[str, Any] | None = None


class VersionResponse(BaseModel):
    """Response model for a version record."""

    version_id: str
    timestamp: datetime
    committer_id: str
    event_type: str
    content_type: str
    content_ref: str
    summary: str
    diff: str | None = None
    metadata: dict[str, Any]


class ContentResponse(BaseModel):
    """Response model for version content."""

    version_id: str
    content: str


class DiffRequest(BaseModel):
    """Request model for a preview diff."""

    old_content: str
    new_content: str


class DiffResponse(BaseModel):
    """Response model for a preview diff."""

    diff: str


def create_versions_router(app: IApplication) -> APIRouter:
    """Create versions router."""
    router = APIRouter(prefix="/api/versions", tags=["versions"])

    @router.post("", response_model=VersionResponse, status_code=201)
    async def capture_version(request: CaptureRequest) -> dict:
        """Capture a new snapshot of a content stream."""
        record = await app.version_store.capture_version(
            content_type=request.content_type,
            content_ref=request.content_ref,
            new_content=request.content,
            event_type=request.event_type,
            summary=request.summary,
            metadata=request.metadata,
        )
        if record is None:
            raise HTTPException(status_code=507, detail="Version could not be stored")
        return record.to_dict()

    @router.get("", response_model=list[VersionResponse])
    async def list_versions(
        content_ref: str | None = Query(None, description="Stream to list; all streams if omitted"),
    ) -> list[dict]:
        """List version records, newest first."""
        try:
            if content_ref:
                records = await app.version_store.get_versions(content_ref)
            else:
                records = await app.version_store.get_all_versions()
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

        return [record.to_dict() for record in records]

    @router.get("/{version_id}/content", response_model=ContentResponse)
    async def get_content(version_id: str) -> dict:
        """Get the raw content of a version."""
        content = await app.version_store.get_version_content(version_id)
        if content is None:
            raise HTTPException(status_code=404, detail="Version not found")
        return {"version_id": version_id, "content": content}

    @router.post("/{version_id}/revert", response_model=ContentResponse)
    async def revert(version_id: str) -> dict:
        """Return a past version's content without changing history."""
        content = await app.version_store.revert_to_version(version_id)
        if content is None:
            raise HTTPException(status_code=404, detail="Version not found")
        return {"version_id": version_id, "content": content}

    @router.post("/diff", response_model=DiffResponse)
    async def preview_diff(request: DiffRequest) -> dict:
        """Line diff between two contents, for revert previews."""
        return {
            "diff": app.version_store.generate_diff(
                request.old_content, request.new_content
            )
        }

    return router
