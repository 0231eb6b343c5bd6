"""In-memory implementation of INotesClient for testing."""

from typing import Any

from siyuan_anki_sync.interfaces import INotesClient


def make_block(
    block_id: str,
    markdown: str = "Question?",
    hpath: str = "/Topic/Doc",
    box: str = "20230101000000-nbaaaaa",
    updated: str = "20240101000000",
    fcontent: str = "",
    **extra: Any,
) -> dict[str, Any]:
    """Build a row shaped like SiYuan's ``blocks`` table."""
    row = {
        "id": block_id,
        "parent_id": "20230101000000-parent1",
        "root_id": "20230101000000-rootdoc",
        "box": box,
        "hpath": hpath,
        "content": markdown,
        "fcontent": fcontent,
        "markdown": markdown,
        "type": "p",
        "subtype": "",
        "created": "20230101000000",
        "updated": updated,
        "hash": "abc1234",
    }
    row.update(extra)
    return row


class FakeSiyuanClient(INotesClient):
    """Serves fixed notebooks and block rows and records notifications."""

    def __init__(
        self,
        notebooks: list[dict[str, Any]] | None = None,
        blocks: list[dict[str, Any]] | None = None,
    ):
        self.notebooks = (
            notebooks
            if notebooks is not None
            else [{"id": "20230101000000-nbaaaaa", "name": "NB"}]
        )
        self.blocks = blocks or []
        # rows served to the parent block lookup
        self.parent_blocks: list[dict[str, Any]] = []
        self.statements: list[str] = []
        self.messages: list[tuple[str, int]] = []
        self.error_messages: list[tuple[str, int]] = []
        self.fail_with: Exception | None = None
        self.fail_notifications: Exception | None = None

    async def ls_notebooks(self) -> list[dict[str, Any]]:
        if self.fail_with:
            raise self.fail_with
        return list(self.notebooks)

    async def sql(self, stmt: str) -> list[dict[str, Any]]:
        if self.fail_with:
            raise self.fail_with
        self.statements.append(stmt)
        if "type IN (" in stmt:
            return [dict(row) for row in self.parent_blocks if f"'{row['id']}'" in stmt]
        return [dict(row) for row in self.blocks]

    async def push_msg(self, msg: str, timeout: int = 7000) -> None:
        if self.fail_notifications:
            raise self.fail_notifications
        self.messages.append((msg, timeout))

    async def push_err_msg(self, msg: str, timeout: int = 7000) -> None:
        if self.fail_notifications:
            raise self.fail_notifications
        self.error_messages.append((msg, timeout))
