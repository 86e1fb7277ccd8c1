"""Structured email record model.

A record is only built once the parser has found a message id, a date and a
sender; the model enforces that as well so a half-parsed message can never
reach the indexer.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class EmailRecord(BaseModel):
    """The fields extracted from one email file.

    Attribute names are Pythonic; the aliases are the field names used on the
    wire (bulk documents and the index mapping).
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    message_id: str = Field(min_length=1, description="Message-ID without angle brackets")
    date: str = Field(
        min_length=1,
        description="UTC timestamp (YYYY-MM-DDTHH:MM:SSZ) or the raw Date header",
    )
    sender: str = Field(alias="from", min_length=1, description="Bare sender address")
    recipient: str = Field(default="", alias="to", description="Bare recipient address")
    subject: str = Field(default="", description="Unfolded Subject header")
    content: str = Field(default="", description="Body text, possibly truncated")
    filepath: str = Field(description="Path of the file the record was parsed from")

    def to_document(self) -> str:
        """Serialize as a single-line JSON document with wire field names."""

        return self.model_dump_json(by_alias=True)
