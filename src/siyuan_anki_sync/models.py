"""Data models for the sync service."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .anki.schema import MODEL_FIELDS


class FlashcardRecord(BaseModel):
    """One flashcard, in the same shape whether read from SiYuan or Anki.

    ``front_content``/``back_content`` hold SiYuan markdown until the
    transform step replaces them with rendered HTML. Records read from Anki
    always hold HTML.
    """

    model_config = ConfigDict(extra="ignore", validate_assignment=True)

    id: str = Field(min_length=1, description="SiYuan block id, the join key")
    parent_id: str = Field(default="", description="Parent block id")
    root_id: str = Field(default="", description="Document block id")
    container_id: str = Field(default="", description="Notebook (box) id")
    deck_path: str = Field(default="", description="'::'-joined Anki deck name")
    front_content: str = Field(default="", description="Front side content")
    back_content: str = Field(default="", description="Back side content")
    kind: str = Field(default="", description="Block type")
    sub_kind: str = Field(default="", description="Block subtype")
    created_at: str = Field(default="", description="Creation timestamp")
    updated_at: str = Field(default="", description="Last update timestamp")
    destination_note_id: int | None = Field(
        default=None, description="Anki note id (populated once created)"
    )
    destination_card_ids: list[int] = Field(
        default_factory=list, description="Anki card ids of the note"
    )

    @field_validator(
        "parent_id",
        "root_id",
        "container_id",
        "deck_path",
        "front_content",
        "back_content",
        "kind",
        "sub_kind",
        "created_at",
        "updated_at",
        mode="before",
    )
    @classmethod
    def default_missing(cls, v: Any) -> str:
        """Missing or null values become empty strings instead of leaking None."""
        if v is None:
            return ""
        return str(v)

    @property
    def exists_in_anki(self) -> bool:
        return self.destination_note_id is not None

    def to_anki_fields(self) -> dict[str, str]:
        """Map the record onto the note type fields, in declared order."""
        values = {
            "front": self.front_content,
            "back": self.back_content,
            "id": self.id,
            "parent_id": self.parent_id,
            "root_id": self.root_id,
            "box": self.container_id,
            "deck": self.deck_path,
            "type": self.kind,
            "subtype": self.sub_kind,
            "created": self.created_at,
            "updated": self.updated_at,
        }
        return {name: values[name] for name in MODEL_FIELDS}

    @classmethod
    def from_anki_fields(
        cls,
        fields: dict[str, str],
        note_id: int | None = None,
        card_ids: list[int] | None = None,
    ) -> "FlashcardRecord":
        """Build a record from plain Anki field values (name -> value)."""
        return cls(
            id=fields.get("id", ""),
            parent_id=fields.get("parent_id"),
            root_id=fields.get("root_id"),
            container_id=fields.get("box"),
            deck_path=fields.get("deck"),
            front_content=fields.get("front"),
            back_content=fields.get("back"),
            kind=fields.get("type"),
            sub_kind=fields.get("subtype"),
            created_at=fields.get("created"),
            updated_at=fields.get("updated"),
            destination_note_id=note_id,
            destination_card_ids=card_ids or [],
        )


RecordMap = dict[str, FlashcardRecord]
