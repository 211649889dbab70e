"""Reconciler that drives KafkaOperation resources through their lifecycle."""

from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable, Iterator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from kafkaops.types import (
    CONDITION_TRUE,
    Condition,
    KafkaOperation,
    OperationState,
    OperationType,
)

log = logging.getLogger(__name__)

RETENTION_BYTES_CONFIG = "retention.bytes"
RETENTION_MS_CONFIG = "retention.ms"
REQUEUE_SHORT_INTERVAL = timedelta(seconds=5)
REQUEUE_LONG_INTERVAL = timedelta(seconds=10)
REQUEUE_CONFIRMATION_INTERVAL = timedelta(seconds=30)
REQUEUE_UNKNOWN_STATE_INTERVAL = timedelta(minutes=1)
KAFKA_BOOTSTRAP_PORT = 9092
KAFKA_ADMIN_CLOSE_ERROR_MESSAGE = "Failed to close the admin client"

_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1
_LEADING_INT = re.compile(r"[ \t\r]*([+-]?\d+)")


class NotFoundError(LookupError):
    """The requested object does not exist."""


@dataclass(frozen=True)
class Request:
    """Identifies the object to reconcile."""

    namespace: str
    name: str


@dataclass(frozen=True)
class Result:
    """Outcome of one reconciliation; ``requeue_after`` asks for a later retry."""

    requeue_after: timedelta | None = None


@dataclass(frozen=True)
class RetentionSettings:
    """Retention limits of a topic."""

    bytes: int = 0
    ms: int = 0


@dataclass(frozen=True)
class ConfigEntry:
    """One configuration value of a Kafka resource."""

    name: str
    value: str


class KubeClient(ABC):
    """Access to stored KafkaOperation objects."""

    @abstractmethod
    def get(self, namespace: str, name: str) -> KafkaOperation:
        """Return the named operation, raising NotFoundError if it is absent."""

    @abstractmethod
    def update_status(self, operation: KafkaOperation) -> None:
        """Persist the status of ``operation``."""


class ClusterAdmin(ABC):
    """Administrative connection to a Kafka cluster."""

    @abstractmethod
    def describe_config(self, topic_name: str) -> Iterable[ConfigEntry]:
        """Return the configuration entries of a topic."""

    @abstractmethod
    def alter_config(self, topic_name: str, entries: Mapping[str, str]) -> None:
        """Set configuration entries of a topic."""

    @abstractmethod
    def close(self) -> None:
        """Release the connection."""


AdminFactory = Callable[[list[str]], ClusterAdmin]


def bootstrap_servers(operation: KafkaOperation, namespace: str) -> list[str]:
    """Return the bootstrap addresses of the operation's Kafka cluster."""
    return [
        f"{operation.spec.cluster_name}-kafka-bootstrap.{namespace}:{KAFKA_BOOTSTRAP_PORT}"
    ]


def get_namespace(operation: KafkaOperation) -> str:
    """Return the namespace of the Kafka cluster an operation targets."""
    return operation.spec.cluster_namespace or operation.namespace


def add_condition(
    operation: KafkaOperation, cond_type: str, reason: str, message: str
) -> None:
    """Append a true condition stamped with the current time."""
    _append_condition(
        operation, cond_type, reason, message, datetime.now(timezone.utc)
    )


def parse_config_int64(value: str) -> int:
    """Parse the leading decimal integer of a config value as a signed 64-bit int."""
    match = _LEADING_INT.match(value)
    if match is None:
        raise ValueError(f"failed to parse value '{value}' to int64: expected integer")
    result = int(match.group(1))
    if not _INT64_MIN <= result <= _INT64_MAX:
        raise ValueError(f"failed to parse value '{value}' to int64: integer overflow")
    return result


def _append_condition(
    operation: KafkaOperation,
    cond_type: str,
    reason: str,
    message: str,
    now: datetime,
) -> None:
    operation.status.conditions.append(
        Condition(
            type=cond_type,
            status=CONDITION_TRUE,
            reason=reason,
            message=message,
            last_transition_time=now,
        )
    )


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class KafkaOperationReconciler:
    """Moves each KafkaOperation towards completion, one step per call."""

    def __init__(
        self,
        client: KubeClient,
        admin_factory: AdminFactory,
        *,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self.client = client
        self.admin_factory = admin_factory
        self.clock = clock

    def reconcile(self, request: Request) -> Result:
        """Run one reconciliation step for the requested operation.

        Errors from reading or persisting the object propagate to the caller.
        """
        try:
            operation = self.client.get(request.namespace, request.name)
        except NotFoundError:
            return Result()

        state = operation.status.state
        if not state:
            return self._handle_new_operation(operation)
        if state == OperationState.PENDING:
            if operation.spec.auto_confirm:
                return self._start_operation(operation)
            return Result(requeue_after=REQUEUE_CONFIRMATION_INTERVAL)
        if state in (OperationState.WAITING_FOR_RESTORE, OperationState.IN_PROGRESS):
            return self._process_state_change(operation)
        if state == OperationState.CONFIRMING:
            return Result(requeue_after=REQUEUE_CONFIRMATION_INTERVAL)
        if state in (
            OperationState.COMPLETED,
            OperationState.FAILED,
            OperationState.CANCELLED,
        ):
            return Result()
        log.info("Unknown operation state: %s", state)
        return Result(requeue_after=REQUEUE_UNKNOWN_STATE_INTERVAL)

    def _process_state_change(self, operation: KafkaOperation) -> Result:
        log.info("Processing state change: %s", operation.status.state)
        if operation.status.state == OperationState.WAITING_FOR_RESTORE:
            wait = timedelta(seconds=operation.spec.timeout_seconds)
            log.info("Waiting for restore to complete, timeout %s", wait)
            reduced_at = operation.status.retention_reduced_time
            if reduced_at is not None:
                elapsed = self.clock() - reduced_at
                if elapsed < wait:
                    return Result(requeue_after=wait - elapsed)
            return self._restore_topic_retention(operation, get_namespace(operation))
        if operation.status.state == OperationState.IN_PROGRESS:
            return self._process_operation(operation)
        return Result()

    def _handle_new_operation(self, operation: KafkaOperation) -> Result:
        self._initialize_status(operation)
        try:
            admin = self._connect(operation, get_namespace(operation))
        except Exception as exc:
            return self._fail(
                operation, "FailedKafkaConnection", f"Failed to connect to Kafka: {exc}"
            )
        with self._closing(admin):
            try:
                settings = self._fetch_retention_settings(
                    admin, operation.spec.topic_name
                )
            except Exception as exc:
                return self._fail(
                    operation,
                    "FailedTopicConfig",
                    f"Failed to get topic configuration: {exc}",
                )
            status = operation.status
            status.original_retention_bytes = settings.bytes
            status.current_retention_bytes = settings.bytes
            status.original_retention_ms = settings.ms
            status.current_retention_ms = settings.ms
            if operation.spec.auto_confirm:
                return self._start_operation(operation)
        return Result(requeue_after=REQUEUE_LONG_INTERVAL)

    def _initialize_status(self, operation: KafkaOperation) -> None:
        operation.status.state = OperationState.PENDING
        operation.status.message = "Operation pending confirmation"
        _append_condition(
            operation,
            "Initialized",
            "OperationCreated",
            "Kafka operation created and pending confirmation",
            self.clock(),
        )

    @staticmethod
    def _fetch_retention_settings(
        admin: ClusterAdmin, topic_name: str
    ) -> RetentionSettings:
        retention_bytes = 0
        retention_ms = 0
        for entry in admin.describe_config(topic_name):
            if entry.name == RETENTION_BYTES_CONFIG:
                retention_bytes = _parse_or_zero(entry.value)
            if entry.name == RETENTION_MS_CONFIG:
                retention_ms = _parse_or_zero(entry.value)
        return RetentionSettings(bytes=retention_bytes, ms=retention_ms)

    def _start_operation(self, operation: KafkaOperation) -> Result:
        now = self.clock()
        spec = operation.spec
        operation.status.state = OperationState.IN_PROGRESS
        operation.status.start_time = now
        operation.status.message = f"Starting {spec.operation} operation"
        _append_condition(
            operation,
            "Started",
            "OperationStarted",
            f"Started {spec.operation} operation on topic {spec.topic_name}",
            now,
        )
        self._save_status(operation)
        return self._process_operation(operation)

    def _process_operation(self, operation: KafkaOperation) -> Result:
        if operation.spec.operation == OperationType.RESET_TOPIC:
            return self._execute_reset_topic(operation)
        return self._fail(
            operation,
            "UnsupportedOperation",
            f"Unsupported operation: {operation.spec.operation}",
        )

    def _execute_reset_topic(self, operation: KafkaOperation) -> Result:
        namespace = get_namespace(operation)
        if operation.status.current_retention_bytes <= 1:
            log.info(
                "Restoring topic retention for %s, original retention %d",
                operation.spec.topic_name,
                operation.status.original_retention_bytes,
            )
            return self._restore_topic_retention(operation, namespace)

        try:
            admin = self._connect(operation, namespace)
        except Exception as exc:
            return self._fail(
                operation, "FailedKafkaConnection", f"Failed to connect to Kafka: {exc}"
            )
        with self._closing(admin):
            try:
                admin.alter_config(
                    operation.spec.topic_name, {RETENTION_BYTES_CONFIG: "1"}
                )
            except Exception as exc:
                return self._fail(
                    operation,
                    "FailedRetentionUpdate",
                    f"Failed to update topic retention: {exc}",
                )
            status = operation.status
            status.current_retention_bytes = 1
            status.state = OperationState.WAITING_FOR_RESTORE
            status.message = "Topic retention reduced, waiting before restore..."
            status.retention_reduced_time = self.clock()
            return self._update_status(operation)

    def _restore_topic_retention(
        self, operation: KafkaOperation, namespace: str
    ) -> Result:
        try:
            admin = self._connect(operation, namespace)
        except Exception as exc:
            return self._fail(
                operation,
                "FailedKafkaConnection",
                f"Failed to connect to Kafka during restoration: {exc}",
            )
        with self._closing(admin):
            spec, status = operation.spec, operation.status
            restore_bytes = spec.restore_retention_bytes or status.original_retention_bytes
            entries = {RETENTION_BYTES_CONFIG: str(restore_bytes)}
            if spec.restore_retention_ms or status.original_retention_ms:
                restore_ms = spec.restore_retention_ms or status.original_retention_ms
                entries[RETENTION_MS_CONFIG] = str(restore_ms)
            try:
                admin.alter_config(spec.topic_name, entries)
            except Exception as exc:
                return self._fail(
                    operation,
                    "FailedRetentionRestore",
                    f"Failed to restore topic retention: {exc}",
                )
            status.state = OperationState.COMPLETED
            status.completion_time = self.clock()
            status.current_retention_bytes = restore_bytes
            status.message = "Topic reset completed successfully, retention restored"
            add_condition(
                operation,
                "Completed",
                "OperationCompleted",
                "Topic reset operation completed successfully",
            )
            return self._update_status(operation)

    def _fail(self, operation: KafkaOperation, reason: str, message: str) -> Result:
        log.error("Operation failed (%s): %s", reason, message)
        now = self.clock()
        operation.status.state = OperationState.FAILED
        operation.status.completion_time = now
        operation.status.message = message
        _append_condition(operation, "Failed", reason, message, now)
        try:
            self.client.update_status(operation)
        except Exception:
            log.exception("Failed to update KafkaOperation status for failure")
            raise
        return Result()

    def _connect(self, operation: KafkaOperation, namespace: str) -> ClusterAdmin:
        servers = bootstrap_servers(operation, namespace)
        log.info("Bootstrap servers: %s", servers)
        try:
            return self.admin_factory(servers)
        except Exception:
            log.exception("Failed to create Kafka admin client")
            raise

    @staticmethod
    @contextmanager
    def _closing(admin: ClusterAdmin) -> Iterator[ClusterAdmin]:
        try:
            yield admin
        finally:
            try:
                admin.close()
            except Exception:
                log.exception(KAFKA_ADMIN_CLOSE_ERROR_MESSAGE)

    def _save_status(self, operation: KafkaOperation) -> None:
        try:
            self.client.update_status(operation)
        except Exception:
            log.exception("Failed to update KafkaOperation status")
            raise

    def _update_status(self, operation: KafkaOperation) -> Result:
        log.info("Updating KafkaOperation status: %s", operation.status.state)
        self._save_status(operation)
        return Result()


def _parse_or_zero(value: str) -> int:
    try:
        return parse_config_int64(value)
    except ValueError:
        return 0