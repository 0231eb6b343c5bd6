"""Async HTTP client for the AnkiConnect API."""

from types import TracebackType
from typing import Any, Literal

import httpx

from siyuan_anki_sync.error_codes import ErrorCode
from siyuan_anki_sync.exceptions import AnkiConnectError
from siyuan_anki_sync.interfaces import BatchItemResult, IAnkiClient
from siyuan_anki_sync.utils.logging import get_logger

logger = get_logger(__name__)

API_VERSION = 6


class AnkiClient(IAnkiClient):
    """Client for the subset of AnkiConnect actions the sync pipeline uses.

    Every request is a POST of ``{action, version, params}``. Transport
    failures and top-level ``error`` values raise ``AnkiConnectError``;
    per-item errors inside ``multi`` batches are returned to the caller.
    """

    def __init__(
        self,
        url: str,
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ):
        """
        Initialize the client.

        Args:
            url: AnkiConnect URL
            timeout: Request timeout in seconds
            client: Optional pre-built httpx client (owned by the caller)
        """
        self.url = url
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)
        logger.debug("anki_client_initialized", url=url, timeout=timeout)

    async def invoke(self, action: str, params: dict[str, Any] | None = None) -> Any:
        """Invoke one AnkiConnect action and return its ``result``.

        Raises:
            AnkiConnectError: If the request fails or the action returns an error
        """
        payload = {"action": action, "version": API_VERSION, "params": params or {}}

        logger.debug("anki_invoke", action=action)

        try:
            response = await self._client.post(self.url, json=payload)
            response.raise_for_status()
        except (httpx.TimeoutException, httpx.ConnectError) as e:
            msg = f"Cannot connect to AnkiConnect at {self.url}: {e}"
            suggestion = (
                "Ensure Anki is running with the AnkiConnect add-on enabled "
                f"and listening at {self.url}."
            )
            raise AnkiConnectError(
                msg,
                suggestion=suggestion,
                error_code=ErrorCode.ANK_CONNECTION_FAILED.value,
                context={"action": action},
            ) from e
        except httpx.HTTPStatusError as e:
            msg = f"HTTP {e.response.status_code} from AnkiConnect"
            raise AnkiConnectError(
                msg,
                error_code=ErrorCode.ANK_API_ERROR.value,
                context={"action": action},
            ) from e
        except httpx.HTTPError as e:
            msg = f"HTTP error calling AnkiConnect: {e}"
            raise AnkiConnectError(
                msg,
                error_code=ErrorCode.ANK_CONNECTION_FAILED.value,
                context={"action": action},
            ) from e

        try:
            result = response.json()
        except ValueError as e:
            msg = f"Invalid JSON response from AnkiConnect: {e}"
            raise AnkiConnectError(
                msg, error_code=ErrorCode.ANK_API_ERROR.value, context={"action": action}
            ) from e

        if not isinstance(result, dict):
            msg = f"Invalid response type: expected dict, got {type(result).__name__}"
            raise AnkiConnectError(msg, error_code=ErrorCode.ANK_API_ERROR.value)

        if "error" not in result and "result" not in result:
            msg = f"Malformed response: missing error/result fields in {result}"
            raise AnkiConnectError(msg, error_code=ErrorCode.ANK_API_ERROR.value)

        if result.get("error") is not None:
            msg = f"AnkiConnect error in {action}: {result['error']}"
            raise AnkiConnectError(
                msg, error_code=ErrorCode.ANK_API_ERROR.value, context={"action": action}
            )

        return result.get("result")

    async def multi(
        self, actions: list[tuple[str, dict[str, Any]]]
    ) -> list[BatchItemResult]:
        """Run several actions in one request.

        The outer call fails like any other action. Each sub-result is
        returned as a ``BatchItemResult`` in submission order so callers can
        report partial failures.
        """
        if not actions:
            return []

        sub_actions = [
            {"action": name, "version": API_VERSION, "params": params}
            for name, params in actions
        ]
        raw = await self.invoke("multi", {"actions": sub_actions})
        if not isinstance(raw, list) or len(raw) != len(actions):
            msg = "AnkiConnect multi returned an unexpected number of results"
            raise AnkiConnectError(
                msg,
                error_code=ErrorCode.ANK_API_ERROR.value,
                context={"expected": len(actions), "received": raw},
            )

        results: list[BatchItemResult] = []
        for index, item in enumerate(raw):
            if isinstance(item, dict) and ("error" in item or "result" in item):
                error = item.get("error")
                results.append(
                    BatchItemResult(
                        index=index,
                        result=item.get("result"),
                        error=str(error) if error is not None else None,
                    )
                )
            else:
                results.append(BatchItemResult(index=index, result=item))
        return results

    async def version(self) -> int:
        return await self.invoke("version")

    async def model_names(self) -> list[str]:
        return await self.invoke("modelNames") or []

    async def create_model(
        self,
        model_name: str,
        fields: list[str],
        card_templates: list[dict[str, str]],
        css: str = "",
    ) -> dict[str, Any]:
        logger.info("anki_create_model", model=model_name, fields=len(fields))
        return await self.invoke(
            "createModel",
            {
                "modelName": model_name,
                "inOrderFields": fields,
                "css": css,
                "cardTemplates": card_templates,
            },
        )

    async def find_cards(self, query: str) -> list[int]:
        return await self.invoke("findCards", {"query": query}) or []

    async def cards_info(self, card_ids: list[int]) -> list[dict[str, Any]]:
        if not card_ids:
            return []
        return await self.invoke("cardsInfo", {"cards": card_ids}) or []

    async def deck_names(self) -> list[str]:
        return await self.invoke("deckNames") or []

    async def create_decks(self, deck_names: list[str]) -> list[BatchItemResult]:
        return await self.multi([("createDeck", {"deck": name}) for name in deck_names])

    async def delete_decks(self, deck_names: list[str], cards_too: bool = True) -> None:
        if not deck_names:
            return
        logger.info("anki_delete_decks", decks=deck_names)
        await self.invoke("deleteDecks", {"decks": deck_names, "cardsToo": cards_too})

    async def change_decks(self, moves: dict[str, list[int]]) -> list[BatchItemResult]:
        return await self.multi(
            [("changeDeck", {"cards": cards, "deck": deck}) for deck, cards in moves.items()]
        )

    async def add_notes(self, notes: list[dict[str, Any]]) -> list[int | None]:
        """Add notes; AnkiConnect returns ids in request order with null for failures."""
        if not notes:
            return []
        result = await self.invoke("addNotes", {"notes": notes})
        if not isinstance(result, list) or len(result) != len(notes):
            msg = "addNotes returned an id list that does not match the request"
            raise AnkiConnectError(
                msg,
                error_code=ErrorCode.ANK_CREATE_FAILED.value,
                context={"submitted": len(notes)},
            )
        return result

    async def update_notes_fields(
        self, updates: list[tuple[int, dict[str, str]]]
    ) -> list[BatchItemResult]:
        return await self.multi(
            [
                ("updateNoteFields", {"note": {"id": note_id, "fields": fields}})
                for note_id, fields in updates
            ]
        )

    async def delete_notes(self, note_ids: list[int]) -> None:
        if not note_ids:
            return
        await self.invoke("deleteNotes", {"notes": note_ids})

    async def get_deck_stats(self, deck_names: list[str]) -> dict[str, dict[str, Any]]:
        if not deck_names:
            return {}
        return await self.invoke("getDeckStats", {"decks": deck_names}) or {}

    async def aclose(self) -> None:
        """Close the underlying HTTP client if this instance created it."""
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "AnkiClient":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> Literal[False]:
        await self.aclose()
        return False
