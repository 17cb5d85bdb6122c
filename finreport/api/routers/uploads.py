"""
finreport/api/routers/uploads.py

Upload session HTTP endpoints.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Response, UploadFile, status

from finreport.api.dependencies import get_statement_upload
from finreport.domain.errors import FileInFlightError, UnknownFileError, UnknownSessionError
from finreport.schemas.uploads import FileItemResponse, UploadSessionResponse, UploadSummaryResponse
from finreport.services.upload_registry import UploadSessionRegistry, get_upload_session_registry
from finreport.services.upload_session import UploadSession

router = APIRouter(prefix="/upload-sessions", tags=["uploads"])


def _session_or_404(registry: UploadSessionRegistry, session_id: str) -> UploadSession:
    try:
        return registry.get(session_id)
    except UnknownSessionError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc


def _session_response(session: UploadSession) -> UploadSessionResponse:
    return UploadSessionResponse(
        session_id=session.id,
        files=[FileItemResponse.model_validate(item) for item in session.files],
        has_successful_upload=session.has_successful_upload,
        all_files_complete=session.all_files_complete,
    )


@router.post("", response_model=UploadSessionResponse, status_code=status.HTTP_201_CREATED)
def create_session(
    registry: UploadSessionRegistry = Depends(get_upload_session_registry),
) -> UploadSessionResponse:
    return _session_response(registry.create())


@router.get("/{session_id}", response_model=UploadSessionResponse)
def get_session(
    session_id: str,
    registry: UploadSessionRegistry = Depends(get_upload_session_registry),
) -> UploadSessionResponse:
    return _session_response(_session_or_404(registry, session_id))


@router.delete("/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
def discard_session(
    session_id: str,
    registry: UploadSessionRegistry = Depends(get_upload_session_registry),
) -> Response:
    try:
        registry.discard(session_id)
    except UnknownSessionError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except FileInFlightError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/{session_id}/files",
    response_model=FileItemResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_file(
    session_id: str,
    file: UploadFile = Depends(get_statement_upload),
    registry: UploadSessionRegistry = Depends(get_upload_session_registry),
) -> FileItemResponse:
    """
    Add one file to the session.

    Files failing the type/size screen are still added, in ``error`` status
    with the reason, so clients can show and remove them.
    """

    session = _session_or_404(registry, session_id)
    try:
        content = await file.read()
    finally:
        await file.close()

    item = session.add_file(name=file.filename or "", content=content, mime_type=file.content_type)
    return FileItemResponse.model_validate(item)


@router.delete("/{session_id}/files/{file_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_file(
    session_id: str,
    file_id: str,
    registry: UploadSessionRegistry = Depends(get_upload_session_registry),
) -> Response:
    session = _session_or_404(registry, session_id)
    try:
        session.remove_file(file_id)
    except UnknownFileError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except FileInFlightError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{session_id}/upload", response_model=UploadSummaryResponse)
async def upload_files(
    session_id: str,
    registry: UploadSessionRegistry = Depends(get_upload_session_registry),
) -> UploadSummaryResponse:
    """
    Upload every pending file and wait until each reaches a terminal state.
    """

    session = _session_or_404(registry, session_id)
    summary = await session.upload_all()
    return UploadSummaryResponse(
        session_id=session.id,
        succeeded=summary.succeeded,
        failed=summary.failed,
        files=[FileItemResponse.model_validate(item) for item in summary.files],
    )
