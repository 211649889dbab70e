"""Resource types of the operations.kafkaops.io/v1alpha1 API group."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, TypeVar, Union


@dataclass(frozen=True)
class GroupVersion:
    """An API group together with one of its versions."""

    group: str
    version: str

    def api_version(self) -> str:
        """Return the ``apiVersion`` string, e.g. ``group/version``."""
        if not self.group:
            return self.version
        return f"{self.group}/{self.version}"


GROUP_VERSION = GroupVersion(group="operations.kafkaops.io", version="v1alpha1")
KIND = "KafkaOperation"
LIST_KIND = "KafkaOperationList"

CONDITION_TRUE = "True"
CONDITION_FALSE = "False"
CONDITION_UNKNOWN = "Unknown"

DEFAULT_TIMEOUT_SECONDS = 300


class OperationType(str, Enum):
    """Kinds of operation a KafkaOperation can request."""

    RESET_TOPIC = "ResetTopic"

    def __str__(self) -> str:
        return self.value


class OperationState(str, Enum):
    """Lifecycle states of a KafkaOperation."""

    PENDING = "Pending"
    CONFIRMING = "Confirming"
    IN_PROGRESS = "InProgress"
    COMPLETED = "Completed"
    FAILED = "Failed"
    CANCELLED = "Cancelled"
    WAITING_FOR_RESTORE = "WaitingForRestore"

    def __str__(self) -> str:
        return self.value


_E = TypeVar("_E", bound=Enum)


def _enum_or_raw(enum_cls: type[_E], value: str) -> Union[_E, str]:
    try:
        return enum_cls(value)
    except ValueError:
        return value


def _require_mapping(data: Any, what: str) -> Mapping[str, Any]:
    if not isinstance(data, Mapping):
        raise TypeError(f"{what} must be a mapping, got {type(data).__name__}")
    return data


def _str(data: Mapping[str, Any], key: str) -> str:
    value = data.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValueError(f"field {key!r} must be a string, got {value!r}")
    return value


def _int(data: Mapping[str, Any], key: str, default: int = 0) -> int:
    value = data.get(key)
    if value is None:
        return default
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"field {key!r} must be an integer, got {value!r}")
    return value


def _bool(data: Mapping[str, Any], key: str) -> bool:
    value = data.get(key)
    if value is None:
        return False
    if not isinstance(value, bool):
        raise ValueError(f"field {key!r} must be a boolean, got {value!r}")
    return value


def _str_map(data: Mapping[str, Any], key: str) -> dict[str, str]:
    value = data.get(key)
    if value is None:
        return {}
    mapping = _require_mapping(value, f"field {key!r}")
    result = {}
    for k, v in mapping.items():
        if not isinstance(k, str) or not isinstance(v, str):
            raise ValueError(f"field {key!r} must map strings to strings")
        result[k] = v
    return result


def _format_time(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def _parse_time(data: Mapping[str, Any], key: str) -> datetime | None:
    value = data.get(key)
    if value is None or value == "":
        return None
    if not isinstance(value, str):
        raise ValueError(f"field {key!r} must be a timestamp string, got {value!r}")
    text = value[:-1] + "+00:00" if value.endswith(("Z", "z")) else value
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError as exc:
        raise ValueError(f"field {key!r} is not a valid timestamp: {value!r}") from exc
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


@dataclass
class Condition:
    """One observed condition of a resource."""

    type: str
    status: str
    reason: str
    message: str
    last_transition_time: datetime | None = None
    observed_generation: int = 0

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"type": self.type, "status": self.status}
        if self.observed_generation:
            result["observedGeneration"] = self.observed_generation
        result["lastTransitionTime"] = (
            _format_time(self.last_transition_time)
            if self.last_transition_time is not None
            else None
        )
        result["reason"] = self.reason
        result["message"] = self.message
        return result

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Condition:
        data = _require_mapping(data, "condition")
        return cls(
            type=_str(data, "type"),
            status=_str(data, "status"),
            reason=_str(data, "reason"),
            message=_str(data, "message"),
            last_transition_time=_parse_time(data, "lastTransitionTime"),
            observed_generation=_int(data, "observedGeneration"),
        )


@dataclass
class ObjectMeta:
    """Identifying metadata of a stored object."""

    name: str = ""
    namespace: str = ""
    uid: str = ""
    resource_version: str = ""
    generation: int = 0
    labels: dict[str, str] = field(default_factory=dict)
    annotations: dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {}
        if self.name:
            result["name"] = self.name
        if self.namespace:
            result["namespace"] = self.namespace
        if self.uid:
            result["uid"] = self.uid
        if self.resource_version:
            result["resourceVersion"] = self.resource_version
        if self.generation:
            result["generation"] = self.generation
        if self.labels:
            result["labels"] = dict(self.labels)
        if self.annotations:
            result["annotations"] = dict(self.annotations)
        return result

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> ObjectMeta:
        data = _require_mapping(data if data is not None else {}, "metadata")
        return cls(
            name=_str(data, "name"),
            namespace=_str(data, "namespace"),
            uid=_str(data, "uid"),
            resource_version=_str(data, "resourceVersion"),
            generation=_int(data, "generation"),
            labels=_str_map(data, "labels"),
            annotations=_str_map(data, "annotations"),
        )


@dataclass
class KafkaOperationSpec:
    """Desired state of a KafkaOperation."""

    operation: Union[OperationType, str] = ""
    topic_name: str = ""
    cluster_name: str = ""
    cluster_namespace: str = ""
    retention_bytes: int = 0
    retention_ms: int = 0
    restore_retention_bytes: int = 0
    restore_retention_ms: int = 0
    auto_confirm: bool = False
    timeout_seconds: int = DEFAULT_TIMEOUT_SECONDS

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "operation": str(self.operation),
            "topicName": self.topic_name,
            "clusterName": self.cluster_name,
        }
        optional = (
            ("clusterNamespace", self.cluster_namespace),
            ("retentionBytes", self.retention_bytes),
            ("retentionMs", self.retention_ms),
            ("restoreRetentionBytes", self.restore_retention_bytes),
            ("restoreRetentionMs", self.restore_retention_ms),
            ("autoConfirm", self.auto_confirm),
            ("timeoutSeconds", self.timeout_seconds),
        )
        result.update((key, value) for key, value in optional if value)
        return result

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> KafkaOperationSpec:
        data = _require_mapping(data if data is not None else {}, "spec")
        return cls(
            operation=_enum_or_raw(OperationType, _str(data, "operation")),
            topic_name=_str(data, "topicName"),
            cluster_name=_str(data, "clusterName"),
            cluster_namespace=_str(data, "clusterNamespace"),
            retention_bytes=_int(data, "retentionBytes"),
            retention_ms=_int(data, "retentionMs"),
            restore_retention_bytes=_int(data, "restoreRetentionBytes"),
            restore_retention_ms=_int(data, "restoreRetentionMs"),
            auto_confirm=_bool(data, "autoConfirm"),
            timeout_seconds=_int(data, "timeoutSeconds", DEFAULT_TIMEOUT_SECONDS),
        )


@dataclass
class KafkaOperationStatus:
    """Observed state of a KafkaOperation; ``state`` is None for a new one."""

    state: Union[OperationState, str, None] = None
    original_retention_bytes: int = 0
    original_retention_ms: int = 0
    current_retention_bytes: int = 0
    current_retention_ms: int = 0
    start_time: datetime | None = None
    completion_time: datetime | None = None
    message: str = ""
    conditions: list[Condition] = field(default_factory=list)
    retention_reduced_time: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {}
        if self.state:
            result["state"] = str(self.state)
        numbers = (
            ("originalRetentionBytes", self.original_retention_bytes),
            ("originalRetentionMs", self.original_retention_ms),
            ("currentRetentionBytes", self.current_retention_bytes),
            ("currentRetentionMs", self.current_retention_ms),
        )
        result.update((key, value) for key, value in numbers if value)
        if self.start_time is not None:
            result["startTime"] = _format_time(self.start_time)
        if self.completion_time is not None:
            result["completionTime"] = _format_time(self.completion_time)
        if self.message:
            result["message"] = self.message
        if self.conditions:
            result["conditions"] = [c.to_dict() for c in self.conditions]
        if self.retention_reduced_time is not None:
            result["retentionReducedTime"] = _format_time(self.retention_reduced_time)
        return result

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> KafkaOperationStatus:
        data = _require_mapping(data if data is not None else {}, "status")
        raw_state = _str(data, "state")
        conditions = data.get("conditions") or []
        if not isinstance(conditions, list):
            raise ValueError("field 'conditions' must be a list")
        return cls(
            state=_enum_or_raw(OperationState, raw_state) if raw_state else None,
            original_retention_bytes=_int(data, "originalRetentionBytes"),
            original_retention_ms=_int(data, "originalRetentionMs"),
            current_retention_bytes=_int(data, "currentRetentionBytes"),
            current_retention_ms=_int(data, "currentRetentionMs"),
            start_time=_parse_time(data, "startTime"),
            completion_time=_parse_time(data, "completionTime"),
            message=_str(data, "message"),
            conditions=[Condition.from_dict(c) for c in conditions],
            retention_reduced_time=_parse_time(data, "retentionReducedTime"),
        )


@dataclass
class KafkaOperation:
    """A request to run one operation against a Kafka topic."""

    metadata: ObjectMeta = field(default_factory=ObjectMeta)
    spec: KafkaOperationSpec = field(default_factory=KafkaOperationSpec)
    status: KafkaOperationStatus = field(default_factory=KafkaOperationStatus)

    @property
    def name(self) -> str:
        return self.metadata.name

    @property
    def namespace(self) -> str:
        return self.metadata.namespace

    def to_dict(self) -> dict[str, Any]:
        return {
            "apiVersion": GROUP_VERSION.api_version(),
            "kind": KIND,
            "metadata": self.metadata.to_dict(),
            "spec": self.spec.to_dict(),
            "status": self.status.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> KafkaOperation:
        data = _require_mapping(data, KIND)
        return cls(
            metadata=ObjectMeta.from_dict(data.get("metadata")),
            spec=KafkaOperationSpec.from_dict(data.get("spec")),
            status=KafkaOperationStatus.from_dict(data.get("status")),
        )


@dataclass
class KafkaOperationList:
    """A page of KafkaOperation objects."""

    items: list[KafkaOperation] = field(default_factory=list)
    resource_version: str = ""
    continue_token: str = ""

    def to_dict(self) -> dict[str, Any]:
        metadata: dict[str, Any] = {}
        if self.resource_version:
            metadata["resourceVersion"] = self.resource_version
        if self.continue_token:
            metadata["continue"] = self.continue_token
        return {
            "apiVersion": GROUP_VERSION.api_version(),
            "kind": LIST_KIND,
            "metadata": metadata,
            "items": [item.to_dict() for item in self.items],
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> KafkaOperationList:
        data = _require_mapping(data, LIST_KIND)
        metadata = _require_mapping(data.get("metadata") or {}, "metadata")
        items = data.get("items") or []
        if not isinstance(items, list):
            raise ValueError("field 'items' must be a list")
        return cls(
            items=[KafkaOperation.from_dict(item) for item in items],
            resource_version=_str(metadata, "resourceVersion"),
            continue_token=_str(metadata, "continue"),
        )