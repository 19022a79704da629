"""
Recording Document

Persisted form of a capture session:
    {version, createdAt, device, totalActions, actions: [...]}
"""

import logging
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from .actions import Action

logger = logging.getLogger(__name__)

FORMAT_VERSION = "1.0"
SUPPORTED_MAJOR_VERSIONS = ("1",)


class Recording(BaseModel):
    """An ordered action sequence plus metadata"""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    version: str
    created_at: Optional[int] = None  # epoch ms
    device: Dict[str, Any] = Field(default_factory=dict)
    total_actions: Optional[int] = None
    actions: List[Action]

    @field_validator("version", mode="before")
    @classmethod
    def _check_version(cls, value: Any) -> str:
        version = str(value).strip()
        major = version.split(".", 1)[0]
        if major not in SUPPORTED_MAJOR_VERSIONS:
            raise ValueError(f"unsupported recording format version '{version}'")
        return version

    @model_validator(mode="after")
    def _check_total(self) -> "Recording":
        count = len(self.actions)
        if self.total_actions is None:
            self.total_actions = count
        elif self.total_actions != count:
            logger.warning(
                f"Recording declares {self.total_actions} actions but contains {count}; using {count}"
            )
            self.total_actions = count
        return self

    def to_document(self) -> Dict[str, Any]:
        """Serialize to the persisted JSON document"""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
