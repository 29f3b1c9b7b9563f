"""
Response envelope shared by every endpoint.

Success:  {"success": true, "message": "...", "data": {...}}
Failure:  {"success": false, "message": "...", "error": "<kind>"}
"""

import math
from typing import Any, Dict, Optional

from pydantic import BaseModel


def success_response(data: Any = None, message: Optional[str] = None) -> Dict[str, Any]:
    body: Dict[str, Any] = {"success": True}
    if message is not None:
        body["message"] = message
    if data is not None:
        body["data"] = data
    return body


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    pages: int

    @classmethod
    def build(cls, page: int, limit: int, total: int) -> "Pagination":
        return cls(page=page, limit=limit, total=total, pages=math.ceil(total / limit) if limit else 0)
