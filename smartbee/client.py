"""Async REST client for the SmartBee backend.

Wraps the CRUD endpoints for users, apiaries, hives, inspections, nodes and
sensor messages.  Authentication state lives in a :class:`SessionManager`
passed in by the caller.

Example::

    async with SmartBeeClient("http://localhost:8080/api") as client:
        await client.login("ana@example.com", "secret")
        messages = await client.get_recent_messages(window_hours=1)
"""

from __future__ import annotations

import logging
from typing import Any, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from smartbee.models import Apiary, Hive, Inspection, Node, SensorMessage, User
from smartbee.session import Session, SessionManager

__all__ = ["ApiError", "SmartBeeClient"]

logger = logging.getLogger("smartbee.client")

_ModelT = TypeVar("_ModelT", bound=BaseModel)

# Keys under which some endpoints wrap their result lists
_LIST_KEYS = (
    "data",
    "items",
    "results",
    "usuarios",
    "apiarios",
    "colmenas",
    "revisiones",
    "nodos",
    "mensajes",
)


class ApiError(Exception):
    """A request to the backend failed.

    Attributes:
        message: Server-provided error text, or a generic description.
        status_code: HTTP status, ``None`` for transport failures.
        code: ``"HTTP_ERROR"``, ``"NETWORK_ERROR"``, ``"TIMEOUT"`` or
            ``"INVALID_RESPONSE"``.
    """

    def __init__(self, message: str, *, status_code: int | None = None, code: str = "HTTP_ERROR") -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.code = code

    def __str__(self) -> str:
        if self.status_code is not None:
            return f"{self.message} (HTTP {self.status_code})"
        return f"{self.message} ({self.code})"


def _ensure_list(data: Any) -> list[Any]:
    """Return *data* as a list, unwrapping ``{"data": [...]}``-style envelopes."""
    if isinstance(data, list):
        return data
    if isinstance(data, dict):
        for key in _LIST_KEYS:
            if isinstance(data.get(key), list):
                return data[key]
    return []


def _parse_rows(model: type[_ModelT], data: Any) -> list[_ModelT]:
    rows: list[_ModelT] = []
    for row in _ensure_list(data):
        try:
            rows.append(model.model_validate(row))
        except ValidationError as exc:
            logger.warning("Skipping malformed %s row: %s", model.__name__, exc.errors()[0].get("msg"))
    return rows


class SmartBeeClient:
    """Async client for the SmartBee REST API.

    Parameters:
        base_url: API root, e.g. ``"http://localhost:8080/api"``.
        timeout_s: Per-request timeout in seconds.
        session: Session manager holding the bearer token.  A fresh one is
            created when omitted.
        headers: Extra HTTP headers sent with every request.
        transport: Optional httpx transport (used by tests).
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout_s: float = 15.0,
        session: SessionManager | None = None,
        headers: dict[str, str] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/") + "/"
        self._timeout = timeout_s
        self._headers = {"Content-Type": "application/json", **(headers or {})}
        self._transport = transport
        self.session = session if session is not None else SessionManager()
        self._client: httpx.AsyncClient | None = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def open(self) -> None:
        if self._client is not None:
            return
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            timeout=httpx.Timeout(self._timeout),
            headers=self._headers,
            transport=self._transport,
        )
        logger.info("SmartBeeClient ready - target: %s", self._base_url)

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None
            logger.info("SmartBeeClient closed")

    async def __aenter__(self) -> SmartBeeClient:
        await self.open()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    @property
    def base_url(self) -> str:
        return self._base_url

    @property
    def is_open(self) -> bool:
        return self._client is not None

    # ------------------------------------------------------------------
    # Core request
    # ------------------------------------------------------------------

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json: Any = None,
    ) -> Any:
        """Send a request and return the decoded JSON body.

        Raises:
            ApiError: On HTTP error statuses, transport failures and
                non-JSON responses.
            RuntimeError: If the client has not been opened.
        """
        if self._client is None:
            raise RuntimeError("SmartBeeClient is not connected")

        path = path.lstrip("/")
        try:
            resp = await self._client.request(
                method.upper(),
                path,
                params=params,
                json=json,
                headers=self.session.auth_headers(),
            )
        except httpx.TimeoutException as exc:
            raise ApiError("Request timed out", code="TIMEOUT") from exc
        except httpx.TransportError as exc:
            raise ApiError(f"Connection error: {exc}", code="NETWORK_ERROR") from exc

        logger.debug("%s %s - HTTP %d", method.upper(), path, resp.status_code)

        if resp.status_code == 401:
            self.session.end("unauthorized")
        if resp.is_error:
            raise ApiError(_error_message(resp), status_code=resp.status_code)

        if not resp.content:
            return None
        try:
            return resp.json()
        except ValueError as exc:
            raise ApiError("Response is not valid JSON", status_code=resp.status_code, code="INVALID_RESPONSE") from exc

    # ------------------------------------------------------------------
    # Health & authentication
    # ------------------------------------------------------------------

    async def health(self) -> dict[str, Any]:
        return await self.request("GET", "health") or {}

    async def login(self, email: str, password: str) -> Session:
        """Authenticate and start a new session."""
        # Older backends read the password from ``clave``.
        data = await self.request(
            "POST", "usuarios/login", json={"email": email, "password": password, "clave": password}
        )
        data = data if isinstance(data, dict) else {}
        user_data = data.get("usuario") or data.get("user")
        user = User.model_validate(user_data) if isinstance(user_data, dict) else None
        return self.session.start(token=str(data.get("token") or ""), user=user)

    async def logout(self) -> None:
        self.session.end("logout")

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    async def list_users(self) -> list[User]:
        return _parse_rows(User, await self.request("GET", "usuarios"))

    async def get_user(self, user_id: int) -> User:
        return User.model_validate(await self.request("GET", f"usuarios/{user_id}"))

    async def create_user(self, data: dict[str, Any]) -> dict[str, Any]:
        return await self.request("POST", "usuarios", json=data)

    async def update_user(self, user_id: int, data: dict[str, Any]) -> dict[str, Any]:
        return await self.request("PUT", f"usuarios/{user_id}", json=data)

    async def delete_user(self, user_id: int) -> None:
        await self.request("DELETE", f"usuarios/{user_id}")

    # ------------------------------------------------------------------
    # Apiaries
    # ------------------------------------------------------------------

    async def list_apiaries(self, user_id: int | None = None) -> list[Apiary]:
        params = {"usuario_id": user_id} if user_id is not None else None
        return _parse_rows(Apiary, await self.request("GET", "apiarios", params=params))

    async def create_apiary(self, data: dict[str, Any]) -> dict[str, Any]:
        return await self.request("POST", "apiarios", json=data)

    async def apiary_stats(self, apiary_id: int) -> dict[str, Any]:
        return await self.request("GET", f"apiarios/{apiary_id}/estadisticas") or {}

    # ------------------------------------------------------------------
    # Hives
    # ------------------------------------------------------------------

    async def list_hives(self, apiary_id: int | None = None) -> list[Hive]:
        params = {"apiario_id": apiary_id} if apiary_id is not None else None
        return _parse_rows(Hive, await self.request("GET", "colmenas", params=params))

    async def list_active_hives(self) -> list[Hive]:
        return _parse_rows(Hive, await self.request("GET", "colmenas/activas"))

    async def get_hive(self, hive_id: int) -> Hive:
        return Hive.model_validate(await self.request("GET", f"colmenas/{hive_id}"))

    async def create_hive(self, data: dict[str, Any]) -> dict[str, Any]:
        return await self.request("POST", "colmenas", json=data)

    async def update_hive(self, hive_id: int, data: dict[str, Any]) -> dict[str, Any]:
        return await self.request("PUT", f"colmenas/{hive_id}", json=data)

    async def delete_hive(self, hive_id: int) -> None:
        await self.request("DELETE", f"colmenas/{hive_id}")

    async def hive_nodes(self, hive_id: int) -> list[Node]:
        return _parse_rows(Node, await self.request("GET", f"colmenas/{hive_id}/nodos"))

    # ------------------------------------------------------------------
    # Inspections
    # ------------------------------------------------------------------

    async def list_inspections(self) -> list[Inspection]:
        return _parse_rows(Inspection, await self.request("GET", "revisiones"))

    async def create_inspection(self, inspection: Inspection | dict[str, Any]) -> dict[str, Any]:
        if isinstance(inspection, dict):
            inspection = Inspection.model_validate(inspection)
        return await self.request("POST", "revisiones", json=inspection.to_backend())

    # ------------------------------------------------------------------
    # Nodes
    # ------------------------------------------------------------------

    async def list_nodes(self) -> list[Node]:
        return _parse_rows(Node, await self.request("GET", "nodos"))

    async def get_node(self, node_id: int | str) -> Node:
        return Node.model_validate(await self.request("GET", f"nodos/{node_id}"))

    async def node_messages(self, node_id: int | str, limit: int = 100) -> list[SensorMessage]:
        data = await self.request("GET", f"nodos/{node_id}/mensajes", params={"limit": limit})
        return _parse_rows(SensorMessage, data)

    # ------------------------------------------------------------------
    # Sensor messages
    # ------------------------------------------------------------------

    async def list_messages(self, limit: int = 100) -> list[SensorMessage]:
        return _parse_rows(SensorMessage, await self.request("GET", "mensajes", params={"limit": limit}))

    async def get_message(self, message_id: int | str) -> SensorMessage:
        return SensorMessage.model_validate(await self.request("GET", f"mensajes/{message_id}"))

    async def messages_by_node(self, node_id: int | str, limit: int = 100) -> list[SensorMessage]:
        data = await self.request("GET", f"mensajes/nodo/{node_id}", params={"limit": limit})
        return _parse_rows(SensorMessage, data)

    async def messages_by_topic(self, topic: str, limit: int = 100) -> list[SensorMessage]:
        data = await self.request("GET", f"mensajes/topico/{topic}", params={"limit": limit})
        return _parse_rows(SensorMessage, data)

    async def get_recent_messages(self, window_hours: float = 24) -> list[SensorMessage]:
        """Messages received during the last *window_hours* hours."""
        data = await self.request("GET", "mensajes/recientes", params={"hours": window_hours})
        return _parse_rows(SensorMessage, data)

    async def create_message(self, node_id: int | str, topic: str, payload: str) -> SensorMessage:
        """Store a new message and return it as the backend recorded it."""
        body = {"nodo_id": node_id, "topico": topic, "payload": payload}
        data = await self.request("POST", "mensajes", json=body)
        record = {**body, **data} if isinstance(data, dict) else body
        # Create endpoints answer {"id": ..., "message": "..."}; keep our payload.
        record["payload"] = payload
        return SensorMessage.model_validate(record)

    async def delete_message(self, message_id: int | str) -> None:
        await self.request("DELETE", f"mensajes/{message_id}")

    # ------------------------------------------------------------------
    # Dashboard
    # ------------------------------------------------------------------

    async def dashboard_stats(self) -> dict[str, Any]:
        return await self.request("GET", "dashboard/stats") or {}


def _error_message(resp: httpx.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        for key in ("error", "message", "detail"):
            if isinstance(body.get(key), str):
                return body[key]
    return "Server error"
