"""MQTT topic helpers.

We keep topic construction in one place so all components agree on naming.

Topic layout under a configurable namespace (default: `servicequeue/v1`):

Request/response:
- `<ns>/engine/requests`
    Every boundary operation (issue, call next, lifecycle, admin, reads).
- `<ns>/engine/responses/<client_id>`
    Per-client reply topic named in the request's `reply_to`.

Broadcast:
- `<ns>/events/changed`
    One message per successful mutation. Payload is only a version number;
    observers re-read state.
- `<ns>/state/snapshot`
    Periodic full snapshot, so observers that missed an event catch up.

Several independent deployments can share one broker by changing the
namespace (e.g. `--namespace campus/north`).
"""

from __future__ import annotations

from .config import DEFAULT_NAMESPACE


def engine_requests(namespace: str = DEFAULT_NAMESPACE) -> str:
    return f"{namespace}/engine/requests"


def engine_responses(client_id: str, namespace: str = DEFAULT_NAMESPACE) -> str:
    return f"{namespace}/engine/responses/{client_id}"


def change_events(namespace: str = DEFAULT_NAMESPACE) -> str:
    """State-changed signal, published by the engine service after each mutation."""
    return f"{namespace}/events/changed"


def state_snapshots(namespace: str = DEFAULT_NAMESPACE) -> str:
    """Periodic snapshot broadcast (polling backstop)."""
    return f"{namespace}/state/snapshot"
