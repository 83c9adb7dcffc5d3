"""Spec, version and user records.

A Spec is a named specification document. Each Spec owns a sequence of
versions numbered 1, 2, 3, ... (never reused). The version status is a flat
label: any status may follow any other, and only ``published`` has a side
effect (it makes the version the spec's current one).
"""

from enum import Enum

from pydantic import BaseModel


class VersionStatus(str, Enum):
    """Review status of a spec version."""

    draft = "draft"
    in_review = "in_review"
    approved = "approved"
    published = "published"
    archived = "archived"


class User(BaseModel):
    """an author of specs and versions."""

    id: int
    username: str
    full_name: str | None = None
    email: str | None = None
    created_at: str


class UserCreate(BaseModel):
    """fields accepted when registering a user."""

    username: str
    full_name: str | None = None
    email: str | None = None


class SpecVersion(BaseModel):
    """One revision of a spec's graph."""

    id: int
    spec_id: int
    version_number: int  # monotonic per spec
    status: VersionStatus = VersionStatus.draft
    created_at: str
    comment: str | None = None
    plain_text: str | None = None
    created_by_id: int | None = None
    based_on_version_id: int | None = None  # provenance when forked


class Spec(BaseModel):
    """A specification document; container for versions."""

    id: int
    title: str
    code: str | None = None
    description: str | None = None
    created_at: str
    created_by_id: int | None = None
    current_version_id: int | None = None


class SpecCreate(BaseModel):
    """fields accepted when creating a spec."""

    title: str
    code: str | None = None
    description: str | None = None
    created_by_id: int | None = None


class SpecWithVersion(BaseModel):
    """result of creating a spec: the spec and its initial draft."""

    spec: Spec
    version: SpecVersion


class SpecListItem(Spec):
    """spec summary including its current version, if any."""

    current_version: SpecVersion | None = None
