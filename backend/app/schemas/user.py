"""
Pydantic schemas for user data embedded in other responses.
"""

from pydantic import BaseModel


class UserSummary(BaseModel):
    id: int
    username: str
    email: str

    model_config = {"from_attributes": True}
