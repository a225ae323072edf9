from enum import Enum

from pydantic import BaseModel, field_validator, model_validator

from gantt_engine.models.task import TaskId


class LinkType(str, Enum):
    """
    Dependency type, stored under its chart code.

    FS: target starts no earlier than source finishes
    SS: target starts no earlier than source starts
    FF: target finishes no earlier than source finishes
    SF: target finishes no earlier than source starts
    """

    FINISH_TO_START = "0"
    START_TO_START = "1"
    FINISH_TO_FINISH = "2"
    START_TO_FINISH = "3"

    @property
    def short_name(self) -> str:
        return _SHORT_NAMES[self]

    @property
    def label(self) -> str:
        return f"{_LABELS[self]} ({self.short_name})"

    @property
    def from_start(self) -> bool:
        """True when the constraint is anchored on the source's start."""
        return self in (LinkType.START_TO_START, LinkType.START_TO_FINISH)

    @property
    def to_finish(self) -> bool:
        """True when the constraint bounds the target's finish."""
        return self in (LinkType.FINISH_TO_FINISH, LinkType.START_TO_FINISH)

    @classmethod
    def parse(cls, value) -> "LinkType":
        """Accept a code ("0"), a short name ("FS") or a name ("finish_to_start")."""
        if isinstance(value, cls):
            return value
        text = str(value).strip()
        for link_type in cls:
            if text == link_type.value or text.upper() in (link_type.short_name, link_type.name):
                return link_type
        raise ValueError(f"Unknown link type: {value!r}")


_SHORT_NAMES = {
    LinkType.FINISH_TO_START: "FS",
    LinkType.START_TO_START: "SS",
    LinkType.FINISH_TO_FINISH: "FF",
    LinkType.START_TO_FINISH: "SF",
}

_LABELS = {
    LinkType.FINISH_TO_START: "Finish-to-Start",
    LinkType.START_TO_START: "Start-to-Start",
    LinkType.FINISH_TO_FINISH: "Finish-to-Finish",
    LinkType.START_TO_FINISH: "Start-to-Finish",
}


def make_link_id(source: TaskId, target: TaskId, link_type: LinkType) -> str:
    return f"{source}_{target}_{link_type.value}"


class Link(BaseModel):
    """
    Directed dependency between two tasks.

    source -> target means the target is constrained by the source according
    to ``type``, shifted by ``lag`` days (negative lag is a lead).
    """

    id: str | None = None
    source: TaskId
    target: TaskId
    type: LinkType = LinkType.FINISH_TO_START
    lag: int = 0

    @field_validator("type", mode="before")
    @classmethod
    def _parse_type(cls, value):
        if value is None:
            return LinkType.FINISH_TO_START
        return LinkType.parse(value)

    @field_validator("lag", mode="before")
    @classmethod
    def _none_lag(cls, value):
        return value or 0

    @model_validator(mode="after")
    def _derive_id(self) -> "Link":
        if not self.id:
            self.id = make_link_id(self.source, self.target, self.type)
        return self

    @property
    def key(self) -> tuple:
        return (self.source, self.target, self.type)
