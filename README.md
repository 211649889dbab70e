# kafkaops

`kafkaops` models the `KafkaOperation` custom resource
(`operations.kafkaops.io/v1alpha1`). It also provides a reconciler that moves
an operation through its life cycle.

Only one operation is supported: `ResetTopic`. It empties a topic by setting
`retention.bytes` to `1`. After a wait, it restores the retention. The restored
values are the ones recorded from the topic, unless the spec gives
`restoreRetentionBytes` or `restoreRetentionMs`.

## Installation

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## The resource model

The resource model lives in `kafkaops.types`. Every resource class has
`to_dict()` and `from_dict()`. They convert to and from the JSON-shaped
dictionaries that the Kubernetes API uses.

```python
from kafkaops.types import KafkaOperation

operation = KafkaOperation.from_dict({
    "apiVersion": "operations.kafkaops.io/v1alpha1",
    "kind": "KafkaOperation",
    "metadata": {"name": "reset-orders", "namespace": "default"},
    "spec": {
        "operation": "ResetTopic",
        "topicName": "orders",
        "clusterName": "my-cluster",
        "autoConfirm": True,
    },
})
print(operation.to_dict()["spec"]["topicName"])
```

What the module defines:

- `GroupVersion`. Its `api_version()` gives `group/version`.
- `OperationType`.
- `OperationState`. The states are `Pending`, `Confirming`, `InProgress`, `WaitingForRestore`, `Completed`, `Failed` and `Cancelled`.
- `Condition`.
- `ObjectMeta`.
- `KafkaOperationSpec`. `timeoutSeconds` defaults to 300.
- `KafkaOperationStatus`. A new operation has `state` set to `None`.
- `KafkaOperation`.
- `KafkaOperationList`.

Malformed input to `from_dict()` raises an error:

- `TypeError` when the input is not a mapping.
- `ValueError` when a field has the wrong type or a timestamp is invalid.

## Reconciling

`kafkaops.controller.KafkaOperationReconciler(client, admin_factory, *, clock=...)`
takes these arguments:

- `client` is an implementation of `KubeClient`. It has two methods:
  - `get(namespace, name)` raises `NotFoundError` when the object is absent.
  - `update_status(operation)`.
- `admin_factory` is a callable. It takes a list of bootstrap servers and returns a `ClusterAdmin`, which has `describe_config`, `alter_config` and `close`.
- `clock` is optional. It returns the current UTC `datetime`.

The bootstrap servers are `<clusterName>-kafka-bootstrap.<namespace>:9092`. For
the namespace, the reconciler uses `clusterNamespace` from the spec when that
is set, and otherwise the resource's own namespace.

```python
from kafkaops.controller import KafkaOperationReconciler, Request

reconciler = KafkaOperationReconciler(client, admin_factory)
result = reconciler.reconcile(Request(namespace="default", name="reset-orders"))
if result.requeue_after is not None:
    ...  # call reconcile again after this timedelta
```

Each call to `reconcile` takes one step. What it does depends on the state of
the operation:

| State | What `reconcile` does |
| --- | --- |
| New (`state` is `None`) | Marks the operation `Pending`. Records the topic's `retention.bytes` and `retention.ms`. With `autoConfirm` it starts the operation at once; without it, it asks for a requeue in 10 seconds. |
| `Pending` | With `autoConfirm` it starts the operation. Without it, it asks for a requeue in 30 seconds. |
| Start | Marks the operation `InProgress`. Sets `retention.bytes` to `1`. Moves to `WaitingForRestore`. If the recorded current retention is already `1` or less, it restores straight away. |
| `WaitingForRestore` | Asks for a requeue until `timeoutSeconds` have passed since the retention was reduced. Then it restores the retention and marks the operation `Completed`. |
| `Confirming` | Asks for a requeue in 30 seconds. |
| `Completed`, `Failed`, `Cancelled` | Does nothing. |
| Unknown state | Asks for a requeue in 1 minute. |

If the requested object no longer exists, `reconcile` returns an empty
`Result`.

Errors from Kafka do not propagate. Instead, the operation is marked `Failed`
and gets a condition whose reason names the problem:

- `FailedKafkaConnection`
- `FailedTopicConfig`
- `FailedRetentionUpdate`
- `FailedRetentionRestore`
- `UnsupportedOperation`

Errors from `KubeClient` do propagate to the caller. This covers `get` for any
error other than `NotFoundError`, and `update_status` for any error.

The module also has these helper functions:

- `get_namespace`
- `bootstrap_servers`
- `add_condition`
- `parse_config_int64`, which parses the leading decimal integer and raises `ValueError` outside the signed 64-bit range.

## What this package does not do

The package contains the model and the reconciliation logic only. It does not
provide:

- A Kubernetes API client or a Kafka admin client. You supply your own `KubeClient` and `ClusterAdmin`.
- A watch loop, a controller manager or a command to run.
- Metrics endpoints, health endpoints or webhook servers.

Scheduling requeues is up to the caller.