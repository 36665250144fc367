from dataclasses import dataclass
from enum import Enum
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, StrictInt, model_validator
from pydantic.alias_generators import to_camel

SCHEMA_VERSION = 1

# Hash recorded for a source file that has no mapping on disk yet.
EMPTY_SCHEMA_HASH = "0"

NonNegativeInt = Annotated[StrictInt, Field(ge=0)]


class CoupletModel(BaseModel):
    """Base for every persisted or reported model: camelCase on the wire, no unknown keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")


class Position(CoupletModel):
    line: NonNegativeInt
    char: NonNegativeInt

    def as_tuple(self) -> tuple[int, int]:
        return (self.line, self.char)


class Range(CoupletModel):
    start: Position
    end: Position

    @model_validator(mode="after")
    def _check_order(self) -> "Range":
        if self.start.as_tuple() > self.end.as_tuple():
            raise ValueError(
                f"range start {self.start.line}:{self.start.char} is after end {self.end.line}:{self.end.char}"
            )
        return self

    @property
    def is_empty(self) -> bool:
        return self.start.as_tuple() == self.end.as_tuple()

    @property
    def is_single_line(self) -> bool:
        return self.start.line == self.end.line

    def contains(self, position: Position) -> bool:
        return self.start.as_tuple() <= position.as_tuple() <= self.end.as_tuple()


def make_range(start_line: int, start_char: int, end_line: int, end_char: int) -> Range:
    return Range(
        start=Position(line=start_line, char=start_char),
        end=Position(line=end_line, char=end_char),
    )


class ManualPin(CoupletModel):
    type: Literal["manual"] = "manual"


class AutomaticPin(CoupletModel):
    type: Literal["automatic"] = "automatic"
    relevance: float = Field(ge=0.0, le=1.0)


PinKind = Annotated[ManualPin | AutomaticPin, Field(discriminator="type")]


class Comment(CoupletModel):
    id: NonNegativeInt
    comment_range: Range
    comment_value: str
    code_range: Range
    code_value: str
    # Relative to the directory of the file holding the comment; "" means the same file.
    code_relative_path: str
    kind: PinKind = Field(default_factory=ManualPin)


class Configuration(CoupletModel):
    line_comment: str | None


class SchemaFile(CoupletModel):
    version: Literal[1]
    configuration: Configuration
    comments: list[Comment]


def empty_schema() -> SchemaFile:
    return SchemaFile(version=SCHEMA_VERSION, configuration=Configuration(line_comment=None), comments=[])


@dataclass(frozen=True)
class StoredMapping:
    schema: SchemaFile
    content_hash: str


class TextEdit(CoupletModel):
    """A single replacement: ``edited_range`` in the old text becomes ``inserted_text``."""

    edited_range: Range
    inserted_text: str


class ErrorType(str, Enum):
    NONE = "none"
    COMMENT_MISMATCH = "commentMismatch"
    CODE_MISMATCH = "codeMismatch"
    BOTH_MISMATCH = "bothMismatch"


class Location(CoupletModel):
    path: str
    range: Range


class PinText(CoupletModel):
    comment: str
    code: str


class MoveFix(CoupletModel):
    comment: Range | None = None
    code: Range | None = None


class Finding(CoupletModel):
    comment_id: int
    error_type: ErrorType
    comment_location: Location
    code_location: Location
    actual: PinText
    expected: PinText
    move_fix: MoveFix | None = None
    out_of_bounds: list[Literal["comment", "code"]] = Field(default_factory=list)
