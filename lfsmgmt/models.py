from typing import Annotated
from pydantic import BaseModel, Field


Oid = Annotated[str, Field(min_length=1, title="Object ID (content hash)")]
UserName = Annotated[str, Field(min_length=1, title="User name")]


class MetaObject(BaseModel):
    """Metadata for one stored object. The oid is always derived from the object's path on disk."""

    oid: Oid
    size: Annotated[int, Field(ge=0)]


class MetaUser(BaseModel):
    """A user of the object store. password holds the bcrypt hash, never the plain text."""

    name: UserName
    password: str = Field(repr=False)
