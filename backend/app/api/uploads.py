"""File upload endpoints returning URLs the chat surface can embed."""

from fastapi import APIRouter, Depends, File, UploadFile, status
from fastapi.responses import FileResponse

from app.api.deps import get_current_user
from app.core import build_file_url, resolve_path, store_upload
from app.models import User

router = APIRouter(prefix="/uploads", tags=["uploads"])


@router.post("", status_code=status.HTTP_201_CREATED)
async def upload_file(
    file: UploadFile = File(...),
    current_user: User = Depends(get_current_user),
) -> dict[str, str]:
    stored = await store_upload(file)
    return {"file_url": build_file_url(stored.stored_name)}


@router.get("/{stored_name}")
def download_file(stored_name: str) -> FileResponse:
    """Return the raw bytes of a previously uploaded file."""

    return FileResponse(resolve_path(stored_name))
