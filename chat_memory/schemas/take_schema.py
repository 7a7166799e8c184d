"""Take schema: one reconstructed prompt/response exchange."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict


class Take(BaseModel):
    """A user prompt paired with the assistant response that followed it."""

    model_config = ConfigDict(frozen=True)

    index: int
    prompt: str
    prompt_timestamp: datetime | None = None
    response: str | None = None
    response_timestamp: datetime | None = None
    settings: dict[str, Any] | None = None

    @property
    def answered(self) -> bool:
        return self.response is not None
