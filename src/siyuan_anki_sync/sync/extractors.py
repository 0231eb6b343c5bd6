"""Read flashcard records from SiYuan and from Anki."""

import re
from typing import Any

from pydantic import ValidationError

from siyuan_anki_sync.anki.schema import DECK_SEPARATOR
from siyuan_anki_sync.error_codes import ErrorCode
from siyuan_anki_sync.exceptions import RecordDataError
from siyuan_anki_sync.interfaces import IAnkiClient, INotesClient
from siyuan_anki_sync.models import FlashcardRecord, RecordMap
from siyuan_anki_sync.utils.logging import get_logger

logger = get_logger(__name__)

BLOCK_ID_PATTERN = re.compile(r"^\d{14}-[0-9a-zA-Z]{7}$")

# List, list item, blockquote and super block
CONTAINER_BLOCK_TYPES = ("l", "i", "b", "s")


def _add_unique(records: RecordMap, record: FlashcardRecord, side: str) -> None:
    """Insert a record unless its id is already taken (first occurrence wins)."""
    if record.id in records:
        logger.warning("duplicate_record_id", record_id=record.id, side=side)
        return
    records[record.id] = record


def deck_path_for_block(root_deck: str, notebook_name: str, hpath: str) -> str:
    """Derive the Anki deck of a block from its document's human-readable path.

    ``hpath`` is the path of the containing document ("/Folder/Doc"); the
    document name is dropped so decks follow the folder hierarchy.
    """
    folders = hpath.split("/")[:-1]
    return DECK_SEPARATOR.join(
        part for part in [root_deck, notebook_name, *folders] if part
    )


def record_from_block(
    row: dict[str, Any], notebooks: dict[str, str], root_deck: str
) -> FlashcardRecord:
    """Map one row of the SiYuan ``blocks`` table into a record.

    Raises:
        RecordDataError: If the row has no block id
    """
    block_id = row.get("id")
    if not block_id:
        raise RecordDataError(
            "Block row has no id",
            error_code=ErrorCode.DAT_MISSING_ID.value,
            context={"hpath": row.get("hpath"), "root_id": row.get("root_id")},
        )

    box = row.get("box") or ""
    markdown = row.get("markdown") or row.get("content") or ""
    return FlashcardRecord(
        id=block_id,
        parent_id=row.get("parent_id"),
        root_id=row.get("root_id"),
        container_id=box,
        deck_path=deck_path_for_block(
            root_deck, notebooks.get(box, box), row.get("hpath") or ""
        ),
        front_content=row.get("fcontent") or markdown,
        back_content=markdown,
        kind=row.get("type"),
        sub_kind=row.get("subtype"),
        created_at=row.get("created"),
        updated_at=row.get("updated"),
    )


def fields_from_card(card: dict[str, Any]) -> dict[str, str]:
    """Flatten the ``fields`` of a cardsInfo entry into field name -> value.

    Raises:
        RecordDataError: If ``fields`` is not a mapping or a field is not
            shaped like ``{"value": ..., "order": ...}``
    """
    raw = card.get("fields") or {}
    if not isinstance(raw, dict):
        raise RecordDataError(
            "Card fields are not a mapping",
            error_code=ErrorCode.DAT_INVALID_RECORD.value,
            context={"card_id": card.get("cardId")},
        )

    fields: dict[str, str] = {}
    for name, value in raw.items():
        if not isinstance(value, dict):
            raise RecordDataError(
                f"Card field {name!r} is not a field object",
                error_code=ErrorCode.DAT_INVALID_RECORD.value,
                context={"card_id": card.get("cardId"), "field": name},
            )
        fields[name] = value.get("value") or ""
    return fields


class SourceExtractor:
    """Extract flashcard blocks from SiYuan."""

    def __init__(
        self,
        client: INotesClient,
        root_deck: str,
        attribute: str = "custom-riff-decks",
        query_limit: int = 10000,
        back_from_parent: bool = False,
    ):
        self.client = client
        self.root_deck = root_deck
        self.attribute = attribute
        self.query_limit = query_limit
        self.back_from_parent = back_from_parent

    def build_query(self) -> str:
        attribute = self.attribute.replace("'", "''")
        return (
            "SELECT * FROM blocks WHERE id IN "
            f"(SELECT block_id FROM attributes WHERE name = '{attribute}') "
            f"LIMIT {self.query_limit}"
        )

    def build_parent_query(self, parent_ids: list[str]) -> str:
        ids = ", ".join(f"'{block_id}'" for block_id in parent_ids)
        types = ", ".join(f"'{kind}'" for kind in CONTAINER_BLOCK_TYPES)
        return f"SELECT * FROM blocks WHERE id IN ({ids}) AND type IN ({types})"

    async def merge_parent_blocks(self, records: RecordMap) -> None:
        """Use the markdown of each record's container block as its back.

        Records whose parent is not a list, list item, blockquote or super
        block get an empty back. The newer of the two update timestamps is
        kept so edits to the container also trigger an update.
        """
        parent_ids = sorted(
            {
                record.parent_id
                for record in records.values()
                if record.parent_id and BLOCK_ID_PATTERN.match(record.parent_id)
            }
        )
        parents: dict[str, dict[str, Any]] = {}
        if parent_ids:
            rows = await self.client.sql(self.build_parent_query(parent_ids))
            parents = {row["id"]: row for row in rows if row.get("id")}

        for record in records.values():
            parent = parents.get(record.parent_id or "")
            if parent is None:
                record.back_content = ""
                continue
            record.back_content = parent.get("markdown") or parent.get("content") or ""
            record.updated_at = max(record.updated_at, parent.get("updated") or "")

        logger.info("parent_blocks_merged", records=len(records), parents=len(parents))

    async def notebooks(self) -> dict[str, str]:
        """Return notebook id -> name."""
        return {
            nb["id"]: nb.get("name") or nb["id"]
            for nb in await self.client.ls_notebooks()
            if nb.get("id")
        }

    async def extract(self) -> RecordMap:
        """Return all flashcard blocks as records keyed by block id.

        An empty map is a normal result (no notebooks or no tagged blocks).
        """
        notebooks = await self.notebooks()
        if not notebooks:
            logger.info("no_notebooks_found")
            return {}

        rows = await self.client.sql(self.build_query())
        if len(rows) >= self.query_limit:
            logger.warning(
                "source_query_limit_reached",
                limit=self.query_limit,
                hint="Raise query_limit to sync every flashcard block",
            )

        records: RecordMap = {}
        for row in rows:
            try:
                record = record_from_block(row, notebooks, self.root_deck)
            except (RecordDataError, ValidationError) as e:
                logger.warning("source_record_skipped", error=str(e))
                continue
            _add_unique(records, record, side="siyuan")

        if self.back_from_parent and records:
            await self.merge_parent_blocks(records)

        logger.info("records_extracted", side="siyuan", count=len(records))
        return records


class DestinationExtractor:
    """Extract synced notes from Anki."""

    def __init__(self, client: IAnkiClient, model_name: str):
        self.client = client
        self.model_name = model_name

    async def extract(self) -> RecordMap:
        """Return the notes of the sync note type keyed by their ``id`` field."""
        card_ids = await self.client.find_cards(f'"note:{self.model_name}"')
        if not card_ids:
            logger.info("records_extracted", side="anki", count=0)
            return {}

        cards = await self.client.cards_info(card_ids)

        records: RecordMap = {}
        note_to_record: dict[int, str] = {}
        for card in cards:
            if not isinstance(card, dict):
                logger.warning(
                    "anki_card_skipped", card_id=None, reason="card info is not a mapping"
                )
                continue
            note_id = card.get("note")
            card_id = card.get("cardId")

            # Additional cards of a note we already have
            if note_id in note_to_record:
                existing = records[note_to_record[note_id]]
                if card_id is not None:
                    existing.destination_card_ids.append(card_id)
                continue

            try:
                fields = fields_from_card(card)
            except RecordDataError as e:
                logger.warning("anki_card_skipped", card_id=card_id, reason=e.message)
                continue
            if not fields.get("id"):
                logger.warning(
                    "anki_card_skipped", card_id=card_id, reason="missing id field"
                )
                continue

            try:
                record = FlashcardRecord.from_anki_fields(
                    fields,
                    note_id=note_id,
                    card_ids=[card_id] if card_id is not None else [],
                )
            except ValidationError as e:
                logger.warning("anki_card_skipped", card_id=card_id, reason=str(e))
                continue

            if record.id in records:
                logger.warning(
                    "duplicate_record_id", record_id=record.id, side="anki", note_id=note_id
                )
                continue
            records[record.id] = record
            if note_id is not None:
                note_to_record[note_id] = record.id

        logger.info("records_extracted", side="anki", count=len(records))
        return records

    async def existing_decks(self) -> list[str]:
        return await self.client.deck_names()
