"""
Common Pydantic schemas
"""

from typing import Any, Optional
from pydantic import BaseModel

class StandardResponse(BaseModel):
    """Standard API response"""
    success: bool
    message: str
    data: Optional[Any] = None

class ErrorResponse(BaseModel):
    """Error response schema"""
    success: bool = False
    error: str
    error_code: Optional[str] = None
    details: Optional[Any] = None

class AliasedModel(BaseModel):
    """Base for documents whose wire names differ from attribute names"""

    class Config:
        populate_by_name = True

    def to_document(self) -> dict:
        """JSON-safe dict using wire (alias) names, as stored and returned"""
        return self.model_dump(mode="json", by_alias=True)
