"""Data models for the SmartBee monitor.

Defines the records exchanged with the SmartBee REST backend (users,
apiaries, hives, inspections, nodes and sensor messages) and the derived,
in-memory results of classification and aggregation.

Backend rows use Spanish column names (``nombre``, ``colmena_id``, …).  Every
entity accepts those names as aliases, keeps unknown columns, and exposes
English attribute names to Python callers.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from smartbee.thresholds import AlertCategory, AlertPriority, StrEnum

__all__ = [
    "AlertAnalysis",
    "Apiary",
    "ChartPoint",
    "Hive",
    "Inspection",
    "MessageAnalysis",
    "MonitorUpdate",
    "Node",
    "QueenCondition",
    "RealTimeDataPoint",
    "SensorMessage",
    "User",
    "ensure_utc",
    "make_key",
]


def _alias(*names: str) -> Any:
    return Field(default=None, validation_alias=AliasChoices(*names))


def ensure_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC so that comparisons never mix kinds."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def make_key(topic: str, node_id: int | str) -> str:
    """Aggregation key for a ``(topic, node)`` pair, e.g. ``"temperatura|3"``."""
    return f"{topic}|{node_id}"


class _BackendRecord(BaseModel):
    """Base for rows returned by the backend."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-safe ``dict`` using the English attribute names."""
        return self.model_dump(mode="json")


# -----------------------------------------------------------------------
# Sensor messages
# -----------------------------------------------------------------------


class SensorMessage(BaseModel):
    """A raw reading reported by a node for one topic.

    Messages are immutable: the backend only creates and deletes them.

    Attributes:
        id: Backend identifier (``None`` for messages not yet stored).
        node_id: Reporting node, e.g. ``3`` or ``"NODO-7"``.
        topic: Measurement kind, e.g. ``"temperatura"``.
        payload: Free-form text such as ``"35.2°C"`` or ``"61%"``.
        timestamp: When the reading was taken (always timezone-aware).
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: int | str | None = Field(default=None, validation_alias=AliasChoices("id", "mensaje_id"))
    node_id: int | str = Field(validation_alias=AliasChoices("node_id", "nodo_id"))
    topic: str = Field(validation_alias=AliasChoices("topic", "topico"))
    payload: str = ""
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        validation_alias=AliasChoices("timestamp", "fecha", "fecha_creacion"),
    )

    @field_validator("payload", mode="before")
    @classmethod
    def _payload_as_text(cls, value: Any) -> str:
        # Some nodes post bare numbers instead of strings.
        return "" if value is None else str(value)

    @field_validator("timestamp", mode="after")
    @classmethod
    def _timestamp_utc(cls, value: datetime) -> datetime:
        return ensure_utc(value)

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SensorMessage:
        return cls.model_validate(data)


class Node(_BackendRecord):
    """A sensor-bearing device attached to a hive."""

    id: int | str
    description: str | None = _alias("description", "descripcion")
    node_type: str | int | None = _alias("node_type", "tipo")
    hive_id: int | None = _alias("hive_id", "colmena_id")


# -----------------------------------------------------------------------
# CRUD entities
# -----------------------------------------------------------------------


class User(_BackendRecord):
    id: int | None = None
    first_name: str | None = _alias("first_name", "nombre")
    last_name: str | None = _alias("last_name", "apellido")
    email: str | None = None
    phone: str | None = _alias("phone", "telefono")
    role: int | str | None = _alias("role", "rol", "rol_descripcion")

    @property
    def full_name(self) -> str:
        return " ".join(part for part in (self.first_name, self.last_name) if part)


class Apiary(_BackendRecord):
    id: int | None = None
    name: str | None = _alias("name", "nombre")
    location: str | None = _alias("location", "ubicacion")
    description: str | None = _alias("description", "descripcion")
    user_id: int | None = _alias("user_id", "usuario_id")
    hive_count: int | None = _alias("hive_count", "total_colmenas")


class Hive(_BackendRecord):
    id: int | None = None
    name: str | None = _alias("name", "nombre")
    hive_type: str | None = _alias("hive_type", "tipo")
    description: str | None = _alias("description", "descripcion")
    status: str | None = _alias("status", "estado")
    owner_id: int | None = _alias("owner_id", "dueno")
    apiary_id: int | None = _alias("apiary_id", "apiario_id")

    @property
    def is_active(self) -> bool:
        return (self.status or "").lower() == "activa"


class QueenCondition(StrEnum):
    GOOD = "buena"
    FAIR = "regular"
    POOR = "mala"
    ABSENT = "ausente"


class Inspection(_BackendRecord):
    """A hive inspection ("revisión") recorded by a beekeeper."""

    id: int | None = None
    hive_id: int | None = _alias("hive_id", "colmena_id")
    inspected_at: datetime | None = _alias("inspected_at", "fecha_revision")
    supers: int = Field(default=0, validation_alias=AliasChoices("supers", "num_alzas"))
    bee_frames: int = Field(default=0, validation_alias=AliasChoices("bee_frames", "marcos_abejas"))
    brood_frames: int = Field(default=0, validation_alias=AliasChoices("brood_frames", "marcos_cria"))
    food_frames: int = Field(default=0, validation_alias=AliasChoices("food_frames", "marcos_alimento"))
    pollen_frames: int = Field(default=0, validation_alias=AliasChoices("pollen_frames", "marcos_polen"))
    varroa_present: bool = Field(
        default=False, validation_alias=AliasChoices("varroa_present", "presencia_varroa")
    )
    queen_condition: QueenCondition = Field(
        default=QueenCondition.GOOD, validation_alias=AliasChoices("queen_condition", "condicion_reina")
    )
    treatment_product: str | None = _alias("treatment_product", "producto_sanitario")
    treatment_dose: str | None = _alias("treatment_dose", "dosis_sanitario")
    temperature: float | None = _alias("temperature", "temperatura")
    humidity: float | None = _alias("humidity", "humedad")
    weight: float | None = _alias("weight", "peso")
    notes: str | None = _alias("notes", "notas")
    user_id: int | None = _alias("user_id", "usuario_id")

    @field_validator("varroa_present", mode="before")
    @classmethod
    def _parse_varroa(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().lower() in ("si", "sí", "yes", "true", "1")
        return value

    @field_validator("temperature", "humidity", "weight", mode="before")
    @classmethod
    def _blank_as_none(cls, value: Any) -> Any:
        # The inspection form sends "" for measurements that were not taken.
        if isinstance(value, str) and not value.strip():
            return None
        return value

    def to_backend(self) -> dict[str, Any]:
        """Serialise using the backend's column names."""
        return {
            "colmena_id": self.hive_id,
            "fecha_revision": self.inspected_at.isoformat() if self.inspected_at else None,
            "num_alzas": self.supers,
            "marcos_abejas": self.bee_frames,
            "marcos_cria": self.brood_frames,
            "marcos_alimento": self.food_frames,
            "marcos_polen": self.pollen_frames,
            "presencia_varroa": "si" if self.varroa_present else "no",
            "condicion_reina": self.queen_condition.value,
            "producto_sanitario": self.treatment_product,
            "dosis_sanitario": self.treatment_dose,
            "temperatura": self.temperature,
            "humedad": self.humidity,
            "peso": self.weight,
            "notas": self.notes,
            "usuario_id": self.user_id,
        }


# -----------------------------------------------------------------------
# Derived results
# -----------------------------------------------------------------------


class AlertAnalysis(BaseModel):
    """Classification of one reading against its topic's thresholds.

    Never persisted; recomputed from ``(topic, payload)`` on every read.

    Attributes:
        category: ``normal``, ``warning``, ``critical`` or ``unknown``.
        priority: ``urgent``, ``high``, ``medium`` or ``normal``.
        message: Short description, e.g. ``"Temperature critically high"``.
        range: The applicable threshold band rendered as text.
        suggestions: Ordered remediation steps.
        color: Display colour name.
        icon: Display icon.
        topic: Canonical topic the reading was classified under.
        value: Extracted numeric value, ``None`` when none was found.
        display: Formatted value with unit, ``None`` when not formattable.
    """

    model_config = ConfigDict(frozen=True)

    category: AlertCategory
    priority: AlertPriority
    message: str
    range: str
    suggestions: tuple[str, ...] = ()
    color: str
    icon: str
    topic: str = ""
    value: float | None = None
    display: str | None = None

    @property
    def is_critical(self) -> bool:
        return self.category is AlertCategory.CRITICAL


class MessageAnalysis(BaseModel):
    """A sensor message paired with its analysis, as handed to consumers."""

    model_config = ConfigDict(frozen=True)

    message: SensorMessage
    analysis: AlertAnalysis


class RealTimeDataPoint(BaseModel):
    """Latest known reading for one ``topic|node_id`` key."""

    key: str
    topic: str
    node_id: int | str
    value: float
    timestamp: datetime
    analysis: AlertAnalysis
    message_id: int | str | None = None


class ChartPoint(BaseModel):
    """One snapshot of all latest values, used for line charts."""

    model_config = ConfigDict(frozen=True)

    timestamp: datetime
    values: dict[str, float] = Field(default_factory=dict)


class MonitorUpdate(BaseModel):
    """Everything a consumer receives for one poll cycle.

    Attributes:
        cycle: Sequence number of the poll that produced this update.
        timestamp: When the cycle completed.
        analyses: One entry per message fetched in this cycle.
        critical_keys: All currently critical keys, most urgent first.
        new_critical_keys: Keys that became critical during this cycle.
        chart_point: The snapshot appended this cycle, if any.
        error: Description of a transient fetch failure; the aggregator
            state is unchanged when this is set.
    """

    cycle: int
    timestamp: datetime
    analyses: list[MessageAnalysis] = Field(default_factory=list)
    critical_keys: list[str] = Field(default_factory=list)
    new_critical_keys: list[str] = Field(default_factory=list)
    chart_point: ChartPoint | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_json(self) -> str:
        return self.model_dump_json()
