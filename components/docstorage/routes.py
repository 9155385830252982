from __future__ import annotations

from email.utils import format_datetime

from fastapi import APIRouter, Depends, HTTPException, Response

from .errors import BlobNotFound, MalformedTimestamp, SizeLimitExceeded, TransportError
from .service import BlobStorage


router = APIRouter(prefix="/v1/blobs", tags=["blobs"])


def get_storage() -> BlobStorage:
    # Apps wire a concrete backend with app.dependency_overrides[get_storage]
    raise HTTPException(status_code=503, detail="blob storage is not configured")


@router.get("/{path:path}")
async def get_blob(path: str, storage: BlobStorage = Depends(get_storage)):
    try:
        blob = await storage.get(path)
    except BlobNotFound:
        raise HTTPException(status_code=404, detail=f"no blob at {path}")
    except SizeLimitExceeded as e:
        raise HTTPException(status_code=413, detail=str(e))
    except (TransportError, MalformedTimestamp) as e:
        raise HTTPException(status_code=502, detail=str(e))

    headers = {"Last-Modified": format_datetime(blob.date_updated, usegmt=True)}
    if blob.compression is not None:
        headers["Content-Encoding"] = str(blob.compression)
    return Response(content=blob.content, media_type=blob.mime, headers=headers)
