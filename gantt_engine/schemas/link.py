from pydantic import BaseModel

from gantt_engine.models import LinkType, TaskId


class LinkCreate(BaseModel):
    """Schema for creating a new link. ``type`` takes a code ("0"), a short name ("FS") or a name."""
    id: str | None = None
    source: TaskId
    target: TaskId
    type: str = LinkType.FINISH_TO_START.value
    lag: int = 0


class LinkRead(BaseModel):
    """Schema for reading a link."""
    id: str
    source: TaskId
    target: TaskId
    type: LinkType
    type_name: str
    lag: int

    @classmethod
    def from_link(cls, link) -> "LinkRead":
        return cls(
            id=link.id,
            source=link.source,
            target=link.target,
            type=link.type,
            type_name=link.type.short_name,
            lag=link.lag,
        )


class LinkValidationRead(BaseModel):
    link_id: str
    valid: bool
    source_exists: bool
    target_exists: bool
    self_link: bool
    errors: list[str]

    @classmethod
    def from_validation(cls, result) -> "LinkValidationRead":
        return cls(
            link_id=result.link_id,
            valid=result.valid,
            source_exists=result.source_exists,
            target_exists=result.target_exists,
            self_link=result.self_link,
            errors=result.errors,
        )
