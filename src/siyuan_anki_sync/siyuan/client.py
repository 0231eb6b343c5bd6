"""Async HTTP client for the SiYuan kernel API."""

from types import TracebackType
from typing import Any, Literal

import httpx

from siyuan_anki_sync.error_codes import ErrorCode
from siyuan_anki_sync.exceptions import SiyuanApiError
from siyuan_anki_sync.interfaces import INotesClient
from siyuan_anki_sync.utils.logging import get_logger

logger = get_logger(__name__)


class SiyuanClient(INotesClient):
    """Client for the SiYuan kernel endpoints used by the sync pipeline.

    All endpoints are POST and answer with a ``{code, msg, data}`` envelope
    where ``code == 0`` means success.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)
        logger.debug("siyuan_client_initialized", url=self.base_url, timeout=timeout)

    async def _post(self, path: str, payload: dict[str, Any] | None = None) -> Any:
        url = f"{self.base_url}{path}"
        logger.debug("siyuan_request", path=path)

        try:
            response = await self._client.post(url, json=payload or {})
            response.raise_for_status()
        except (httpx.TimeoutException, httpx.ConnectError) as e:
            msg = f"Cannot connect to SiYuan at {self.base_url}: {e}"
            raise SiyuanApiError(
                msg,
                suggestion=(
                    "Ensure SiYuan is running and check siyuan_host/siyuan_port "
                    "in the configuration."
                ),
                error_code=ErrorCode.SIY_CONNECTION_FAILED.value,
                context={"path": path},
            ) from e
        except httpx.HTTPStatusError as e:
            msg = f"HTTP {e.response.status_code} from SiYuan {path}"
            raise SiyuanApiError(
                msg, error_code=ErrorCode.SIY_API_ERROR.value, context={"path": path}
            ) from e
        except httpx.HTTPError as e:
            msg = f"HTTP error calling SiYuan {path}: {e}"
            raise SiyuanApiError(
                msg,
                error_code=ErrorCode.SIY_CONNECTION_FAILED.value,
                context={"path": path},
            ) from e

        try:
            envelope = response.json()
        except ValueError as e:
            msg = f"Invalid JSON response from SiYuan {path}: {e}"
            raise SiyuanApiError(msg, error_code=ErrorCode.SIY_API_ERROR.value) from e

        if not isinstance(envelope, dict) or "code" not in envelope:
            msg = f"Malformed SiYuan response from {path}: {envelope!r}"
            raise SiyuanApiError(msg, error_code=ErrorCode.SIY_API_ERROR.value)

        if envelope["code"] != 0:
            msg = f"SiYuan {path} failed with code {envelope['code']}: {envelope.get('msg', '')}"
            raise SiyuanApiError(
                msg,
                error_code=ErrorCode.SIY_API_ERROR.value,
                context={"path": path, "code": envelope["code"]},
            )

        return envelope.get("data")

    async def version(self) -> str:
        """Return the kernel version string."""
        return await self._post("/api/system/version")

    async def ls_notebooks(self) -> list[dict[str, Any]]:
        data = await self._post("/api/notebook/lsNotebooks")
        return (data or {}).get("notebooks") or []

    async def sql(self, stmt: str) -> list[dict[str, Any]]:
        return await self._post("/api/query/sql", {"stmt": stmt}) or []

    async def push_msg(self, msg: str, timeout: int = 7000) -> None:
        await self._post("/api/notification/pushMsg", {"msg": msg, "timeout": timeout})

    async def push_err_msg(self, msg: str, timeout: int = 7000) -> None:
        await self._post(
            "/api/notification/pushErrMsg", {"msg": msg, "timeout": timeout}
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "SiyuanClient":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> Literal[False]:
        await self.aclose()
        return False
