from enum import Enum
from typing import Literal

from pydantic import BaseModel, Field


class EntryKind(str, Enum):
    file = "file"
    directory = "directory"


class TreeItem(BaseModel):
    """One object of a recursive repository tree."""

    path: str
    kind: Literal["blob", "tree", "commit"]


class AssetRecord(BaseModel):
    """An image in the repository, as found in the tree index."""

    path: str = Field(description="Slash separated path of the image, relative to the repository root")
    public_url: str = Field(description="URL of the image through the public proxy")


class DirectoryEntry(BaseModel):
    name: str = Field(description="Name of the file or directory")
    path: str = Field(description="Path relative to the repository root")
    kind: EntryKind
    version_token: str = Field(description="Blob sha, needed to move or delete the file")
    public_url: str | None = Field(None, description="Proxy URL, only set for image files")


class MoveState(str, Enum):
    pending_write = "pending-write"
    written = "written"
    deleted = "deleted"


class MoveOperation(BaseModel):
    source_path: str = Field(description="Current path of the file")
    destination_path: str = Field(description="New path of the file")
    version_token: str = Field(description="Version token (sha) of the source file")
    source_content_url: str = Field(description="URL the current content can be downloaded from")


class User(BaseModel):
    """For internal use only. Represents a logged in operator."""

    name: str
