from pydantic import BaseModel
from typing import Optional


class UploadRequest(BaseModel):
    content_type: Optional[str] = None


class UploadResponse(BaseModel):
    upload_url: str
    object_path: str
