"""RDAP response and ownership result models.

Provides the pydantic models for the loosely structured RDAP objects returned by
regional registries and for the results handed back to the transport layer.
"""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Remark(BaseModel):
    """RDAP remark with a title and ordered description lines."""

    model_config = ConfigDict(extra="allow")

    title: Optional[str] = None
    description: List[str] = Field(default_factory=list)

    @field_validator("description", mode="before")
    @classmethod
    def null_description(cls, v):
        return [] if v is None else v


class RdapObject(BaseModel):
    """RDAP IP network object.

    Only the members needed for ownership extraction are declared. All other members
    are retained so the object can be passed through verbatim.
    """

    model_config = ConfigDict(extra="allow")

    name: Optional[str] = None
    remarks: List[Remark] = Field(default_factory=list)

    @field_validator("remarks", mode="before")
    @classmethod
    def null_remarks(cls, v):
        """Treat an explicit null remarks member like an absent one."""
        return [] if v is None else v


class Ownership(BaseModel):
    """Name and organization projected out of an RDAP object."""

    name: str = ""
    organization: str = ""


class OwnershipResult(BaseModel):
    """Successful ownership resolution for a client address."""

    model_config = ConfigDict(populate_by_name=True)

    client_ip: str = Field(alias="clientIP")
    name: str
    organization: str


class ResolutionError(BaseModel):
    """Failed ownership resolution, carrying the original client address."""

    model_config = ConfigDict(populate_by_name=True)

    client_ip: str = Field(alias="clientIP")
    error: str = "rdap_unavailable"
