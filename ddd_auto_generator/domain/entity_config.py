"""
Per-entity configuration models.

The normalizer fills defaults into the raw ``parameters`` document and then
validates every table entry against :class:`EntityConfig`. After that the
configuration is frozen and read by the resolver, the classifier and every
synthesizer.
"""

import re
from typing import Any, Dict, FrozenSet, List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..constants import EntityDefaults, OperationNames
from .models import StoreBackend
from .naming import clean_field_name, to_snake_case


def parse_store_selection(value: Any) -> FrozenSet[StoreBackend]:
    """
    Parse a backend selection such as ``"sql,eventstream,redis"``.

    Lists of names are accepted as well. Unknown backend names raise
    ``ValueError`` so pydantic reports them against the offending table.
    """
    if value is None:
        value = EntityDefaults.STORE_SELECTION
    if isinstance(value, str):
        names = [name.strip().lower() for name in value.split(",")]
    elif isinstance(value, (list, tuple, set, frozenset)):
        names = [
            item.value if isinstance(item, StoreBackend) else str(item).strip().lower()
            for item in value
        ]
    else:
        raise TypeError(f"Store selection must be a string or a list, got {type(value).__name__}")

    backends = set()
    for name in names:
        if not name:
            continue
        try:
            backends.add(StoreBackend(name))
        except ValueError:
            allowed = ", ".join(backend.value for backend in StoreBackend)
            raise ValueError(f"Unknown store backend '{name}'. Allowed values are: {allowed}") from None
    return frozenset(backends)


class _FrozenModel(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)


class DocsConfig(_FrozenModel):
    summary: Optional[str] = None
    description: Optional[str] = None


class PermissionsConfig(_FrozenModel):
    enabled: bool = True
    prefix: str = ""


class ApiParamConfig(_FrozenModel):
    type: Literal["string", "number"] = "string"
    description: Optional[str] = None

    @field_validator("type", mode="before")
    def normalize_type(cls, v):
        # Anything that is not declared numeric is passed through as a string
        return "number" if str(v).lower() in ("number", "int", "integer", "float") else "string"


class ApiConfig(_FrozenModel):
    """A custom API declared for an entity, keyed by its route template."""

    method: str = "post"
    description: Optional[str] = None
    params: Dict[str, ApiParamConfig] = Field(default_factory=dict)
    response: Optional[Any] = None


class CustomApi(_FrozenModel):
    """A custom API with its route parsed into an operator name and parameters."""

    route: str
    method_name: str
    params: Tuple[Tuple[str, str], ...] = ()
    http_method: str = "post"

    @classmethod
    def from_route(cls, route: str, api: ApiConfig) -> "CustomApi":
        param_names = re.findall(r":([a-zA-Z0-9_]+)", route)
        params = tuple(
            (clean_field_name(name), api.params[name].type if name in api.params else "string")
            for name in param_names
        )
        method_name = to_snake_case(re.sub(r"[:/]", " ", route))
        return cls(route=route, method_name=method_name, params=params, http_method=api.method.lower())


class StoreConfig(_FrozenModel):
    read: FrozenSet[StoreBackend] = Field(default_factory=lambda: parse_store_selection(None))
    write: FrozenSet[StoreBackend] = Field(default_factory=lambda: parse_store_selection(None))
    list: FrozenSet[StoreBackend] = Field(default_factory=lambda: parse_store_selection(None))

    @field_validator("read", "write", "list", mode="before")
    def parse_backends(cls, v):
        return parse_store_selection(v)

    @property
    def all_backends(self) -> FrozenSet[StoreBackend]:
        return self.read | self.write | self.list


class CancelConfig(_FrozenModel):
    create: bool = False
    update: bool = False
    delete: bool = False
    batch: bool = False
    get: bool = False


class RedisConfig(_FrozenModel):
    category: str
    ttl: int = EntityDefaults.REDIS_TTL
    hash: bool = EntityDefaults.REDIS_HASH
    prefix: str
    aggregate: str
    version: str = EntityDefaults.VERSION


class EventStreamConfig(_FrozenModel):
    stream: str
    create_type: str = Field(EntityDefaults.CREATE_EVENT_TYPE, alias="create-type")
    update_type: str = Field(EntityDefaults.UPDATE_EVENT_TYPE, alias="update-type")
    bounded_context: str = Field(..., alias="boundedContext")
    aggregate: str
    version: str = EntityDefaults.VERSION


class EntityConfig(_FrozenModel):
    """Validated configuration of one table."""

    docs: DocsConfig = Field(default_factory=DocsConfig)
    permissions: PermissionsConfig = Field(default_factory=PermissionsConfig)
    apis: Dict[str, ApiConfig] = Field(default_factory=dict)
    store: StoreConfig = Field(default_factory=StoreConfig)
    cancel: CancelConfig = Field(default_factory=CancelConfig)
    complete: List[str] = Field(default_factory=list)
    redis: RedisConfig
    eventstream: EventStreamConfig
    cols: Dict[str, Dict[str, Any]] = Field(default_factory=dict)
    excluded: List[str] = Field(default_factory=list)

    @field_validator("apis", "cols", mode="before")
    def none_to_empty_dict(cls, v):
        return {} if v is None else v

    def is_cancelled(self, operation: str) -> bool:
        if operation not in OperationNames.ALL:
            raise ValueError(f"Unknown operation '{operation}'")
        return bool(getattr(self.cancel, operation))

    @property
    def all_operations_cancelled(self) -> bool:
        return all(self.is_cancelled(op) for op in OperationNames.ALL)

    @property
    def custom_apis(self) -> List[CustomApi]:
        """Custom APIs in route order."""
        return [CustomApi.from_route(route, api) for route, api in sorted(self.apis.items())]

    @property
    def has_custom_apis(self) -> bool:
        return bool(self.apis)

    @property
    def supports_relational(self) -> bool:
        """True when relational storage serves reads or writes."""
        return StoreBackend.SQL in (self.store.read | self.store.write)

    @property
    def uses_redis(self) -> bool:
        return StoreBackend.REDIS in self.store.all_backends

    @property
    def uses_event_stream(self) -> bool:
        return StoreBackend.EVENTSTREAM in self.store.all_backends
