"""
Pydantic models for request/response validation
"""
from pydantic import BaseModel, ConfigDict, Field
from typing import Optional

class OcrRequest(BaseModel):
    """Request model for the image relay"""
    model_config = ConfigDict(populate_by_name=True)

    image_url: Optional[str] = Field(default=None, alias='imageUrl')
    filetype: Optional[str] = None

class OcrResponse(BaseModel):
    """Recognized text; empty when the provider found none"""
    text: str = ''

class ParseRequest(BaseModel):
    """Request model for the text relay"""
    text: Optional[str] = None

class ErrorResponse(BaseModel):
    error: str

class HealthResponse(BaseModel):
    """Health check response"""
    status: str
    version: str
    ocr_mode: str
    ocr_configured: bool
    llm_configured: bool
