"""Pydantic request bodies accepted by the relay routes.

Field names follow the JSON the browser client sends, so the generation
routes use camelCase and the upload routes use the Form Now snake_case
names. Required values are optional here and checked in the route, so that
a missing value produces the relay's ``{"error": ...}`` body with status 400
rather than FastAPI's default validation response.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class TextTo3DBody(BaseModel):
    apiKey: Optional[str] = None
    prompt: Optional[str] = None
    artStyle: str = "realistic"


class ImageTo3DBody(BaseModel):
    apiKey: Optional[str] = None
    imageUrl: Optional[str] = None


class MultiImageTo3DBody(BaseModel):
    apiKey: Optional[str] = None
    imageUrls: Optional[List[str]] = None


class InitializeUploadBody(BaseModel):
    file_type: str
    file_name: str
    metadata: Optional[Dict[str, Any]] = None


class UpdateUploadStatusBody(BaseModel):
    status: str = Field(default="UPLOADED")


class CreateTaskResponse(BaseModel):
    taskId: str
