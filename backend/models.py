# backend/models.py
from typing import List, Literal, Optional
from pydantic import BaseModel, ConfigDict
from sqlmodel import Field, SQLModel

AspectRatio = Literal["1:1", "3:4", "4:3", "9:16", "16:9"]
ASPECT_RATIOS = ("1:1", "3:4", "4:3", "9:16", "16:9")


class GeneratedImage(SQLModel):
    id: str
    url: str
    prompt: str
    aspectRatio: AspectRatio = "1:1"
    timestamp: int


class OAuthTokenSet(BaseModel):
    # Whatever the token endpoint returns is passed through untouched.
    model_config = ConfigDict(extra="allow")

    access_token: str
    refresh_token: Optional[str] = None
    expires_at: Optional[int] = None
    scope: Optional[str] = None
    token_type: str = "Bearer"


class ExportRecord(SQLModel):
    timestamp: str
    prompt: str
    aspectRatio: str
    driveLink: str

    def as_row(self) -> List[str]:
        return [self.timestamp, self.prompt, self.aspectRatio, self.driveLink]


class LocalStorageItem(SQLModel, table=True):
    key: str = Field(primary_key=True, max_length=255)
    value: str
