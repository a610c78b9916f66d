"""
Signed-in identity.
"""

from typing import Optional

from pydantic import BaseModel


class Identity(BaseModel):
    id: str
    email: Optional[str] = None
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None

    model_config = {"frozen": True}
