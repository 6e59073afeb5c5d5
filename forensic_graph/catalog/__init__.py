"""
Entity Catalog & Raw Event Store

RESPONSIBILITY: Hold one Search's entities and raw events, keyed by id
ALLOWED INPUTS: The upstream analysis-data payload
OUTPUTS: Dataset (catalog + event store + the Search window)

WHAT THIS LAYER MUST NOT DO:
============================
- Aggregate, index or filter events
- Merge a new Search into an old one (every Search replaces wholesale)
- Raise on data-quality problems (duplicates are recorded, last write wins)

BOUNDARY ENFORCEMENT:
=====================
- Pure storage, lookup by id only
- The only exception raised is MalformedPayloadError, for payloads
  that do not have the agreed shape at all
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple, TypeVar

from ..contracts.base import Error, ErrorCode, MalformedPayloadError, TimeWindow
from ..contracts.entities import Endpoint, Entity, File, NodeType, Port, Process
from ..contracts.events import FileVersionEvent, NetworkActivityEvent


T = TypeVar('T')


# =============================================================================
# ENTITY CATALOG
# =============================================================================

@dataclass(frozen=True)
class EntityCatalog:
    """The four entity collections of one Search, keyed by id."""
    ports: Dict[str, Port] = field(default_factory=dict)
    processes: Dict[str, Process] = field(default_factory=dict)
    files: Dict[str, File] = field(default_factory=dict)
    endpoints: Dict[str, Endpoint] = field(default_factory=dict)

    def get(self, entity_id: str) -> Optional[Entity]:
        for collection in (self.ports, self.processes, self.files, self.endpoints):
            entity = collection.get(entity_id)
            if entity is not None:
                return entity
        return None

    def collection(self, node_type: NodeType) -> Dict[str, Entity]:
        return {
            NodeType.PORT: self.ports,
            NodeType.PROCESS: self.processes,
            NodeType.FILE: self.files,
            NodeType.ENDPOINT: self.endpoints,
        }[node_type]

    def endpoint_for_host(self, host_name: str) -> Optional[Endpoint]:
        """First endpoint registered for a host, in payload order."""
        for endpoint in self.endpoints.values():
            if endpoint.host_name == host_name:
                return endpoint
        return None

    def active_hosts(self) -> Tuple[str, ...]:
        """
        Host names known to this Search.

        "localhost" always comes first, followed by endpoint host names
        in first-seen order.
        """
        hosts = ["localhost"]
        for endpoint in self.endpoints.values():
            if endpoint.host_name not in hosts:
                hosts.append(endpoint.host_name)
        return tuple(hosts)

    @property
    def size(self) -> int:
        return len(self.ports) + len(self.processes) + len(self.files) + len(self.endpoints)


# =============================================================================
# RAW EVENT STORE
# =============================================================================

@dataclass(frozen=True)
class RawEventStore:
    """The two raw event collections of one Search, keyed by event id."""
    file_versions: Dict[str, FileVersionEvent] = field(default_factory=dict)
    network_activities: Dict[str, NetworkActivityEvent] = field(default_factory=dict)

    def timestamps(self) -> List[int]:
        """Timestamps of every raw event (both kinds), unsorted."""
        return (
            [e.timestamp for e in self.file_versions.values()]
            + [e.timestamp for e in self.network_activities.values()]
        )

    @property
    def size(self) -> int:
        return len(self.file_versions) + len(self.network_activities)


@dataclass(frozen=True)
class Dataset:
    """
    Everything one Search produced.

    Passed explicitly through the pipeline; there is no ambient copy.
    """
    search_window: TimeWindow
    catalog: EntityCatalog
    events: RawEventStore
    diagnostics: Tuple[Error, ...] = field(default_factory=tuple)

    @staticmethod
    def empty(search_window: TimeWindow) -> Dataset:
        return Dataset(search_window=search_window, catalog=EntityCatalog(), events=RawEventStore())


# =============================================================================
# PAYLOAD PARSING
# =============================================================================

def _require(record: Mapping[str, Any], key: str, collection: str) -> Any:
    if key not in record or record[key] is None:
        raise MalformedPayloadError(f"{collection} record is missing required field '{key}': {record!r}")
    return record[key]


def _as_int(value: Any, key: str, collection: str) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise MalformedPayloadError(f"{collection}.{key} must be numeric, got {value!r}")
    return int(value)


def _size_of(record: Mapping[str, Any], collection: str) -> int:
    # Upstream names the byte count differently per collection.
    for key in ("size", "fileSize", "length"):
        if record.get(key) is not None:
            return _as_int(record[key], key, collection)
    return 0


def _parse_port(record: Mapping[str, Any]) -> Port:
    processes = record.get("processes", record.get("processIds"))
    if processes is not None and not isinstance(processes, (list, tuple)):
        raise MalformedPayloadError(f"ports.processes must be a list, got {processes!r}")
    return Port(
        id=str(_require(record, "id", "ports")),
        port_number=_as_int(_require(record, "portNumber", "ports"), "portNumber", "ports"),
        host_name=str(_require(record, "hostName", "ports")),
        process_ids=tuple(str(p) for p in processes) if processes else None
    )


def _parse_process(record: Mapping[str, Any]) -> Process:
    return Process(
        id=str(_require(record, "id", "processes")),
        name=str(record.get("name") or ""),
        host_name=str(_require(record, "hostName", "processes"))
    )


def _parse_file(record: Mapping[str, Any]) -> File:
    return File(
        id=str(_require(record, "id", "files")),
        path=str(record.get("path") or ""),
        name=str(record.get("name") or ""),
        type=str(record.get("type") or ""),
        host_name=str(_require(record, "hostName", "files"))
    )


def _parse_endpoint(record: Mapping[str, Any]) -> Endpoint:
    return Endpoint(
        id=str(_require(record, "id", "endpoints")),
        host_name=str(_require(record, "hostName", "endpoints")),
        host_ip=str(record.get("hostIp") or "")
    )


def _parse_file_version(record: Mapping[str, Any]) -> FileVersionEvent:
    return FileVersionEvent(
        id=str(_require(record, "id", "fileVersions")),
        timestamp=_as_int(_require(record, "timestamp", "fileVersions"), "timestamp", "fileVersions"),
        source=str(_require(record, "source", "fileVersions")),
        target=str(_require(record, "target", "fileVersions")),
        size=_size_of(record, "fileVersions"),
        action=str(record.get("action") or "")
    )


def _parse_network_activity(record: Mapping[str, Any]) -> NetworkActivityEvent:
    return NetworkActivityEvent(
        id=str(_require(record, "id", "networkActivities")),
        timestamp=_as_int(_require(record, "timestamp", "networkActivities"), "timestamp", "networkActivities"),
        source=str(_require(record, "source", "networkActivities")),
        target=str(_require(record, "target", "networkActivities")),
        size=_size_of(record, "networkActivities"),
        protocol=str(record.get("protocol") or "")
    )


def _keyed(
    payload: Mapping[str, Any],
    collection: str,
    parse: Callable[[Mapping[str, Any]], T],
    diagnostics: List[Error]
) -> Dict[str, T]:
    """Parse one collection into an id-keyed dict; the last record wins."""
    records = payload.get(collection)
    if records is None:
        return {}
    if not isinstance(records, (list, tuple)):
        raise MalformedPayloadError(f"'{collection}' must be a list, got {type(records).__name__}")

    keyed: Dict[str, T] = {}
    for record in records:
        if not isinstance(record, Mapping):
            raise MalformedPayloadError(f"'{collection}' entries must be objects, got {record!r}")
        item = parse(record)
        if item.id in keyed:
            diagnostics.append(Error.create(
                ErrorCode.DUPLICATE_RECORD,
                f"Duplicate {collection} record '{item.id}', keeping the last one",
                collection=collection,
                record_id=item.id
            ))
        keyed[item.id] = item
    return keyed


def parse_analysis_data(payload: Mapping[str, Any], search_window: TimeWindow) -> Dataset:
    """
    Build a Dataset from the upstream `analysisData` payload.

    Accepts either the bare collections object or the GraphQL response
    wrapper (`{"analysisData": {...}}`).
    """
    if not isinstance(payload, Mapping):
        raise MalformedPayloadError(f"analysis data must be an object, got {type(payload).__name__}")
    if "analysisData" in payload:
        payload = payload["analysisData"]
        if not isinstance(payload, Mapping):
            raise MalformedPayloadError("analysisData must be an object")

    diagnostics: List[Error] = []
    catalog = EntityCatalog(
        ports=_keyed(payload, "ports", _parse_port, diagnostics),
        processes=_keyed(payload, "processes", _parse_process, diagnostics),
        files=_keyed(payload, "files", _parse_file, diagnostics),
        endpoints=_keyed(payload, "endpoints", _parse_endpoint, diagnostics),
    )
    events = RawEventStore(
        file_versions=_keyed(payload, "fileVersions", _parse_file_version, diagnostics),
        network_activities=_keyed(payload, "networkActivities", _parse_network_activity, diagnostics),
    )
    return Dataset(
        search_window=search_window,
        catalog=catalog,
        events=events,
        diagnostics=tuple(diagnostics)
    )


def build_dataset(
    search_window: TimeWindow,
    ports: Iterable[Port] = (),
    processes: Iterable[Process] = (),
    files: Iterable[File] = (),
    endpoints: Iterable[Endpoint] = (),
    file_versions: Iterable[FileVersionEvent] = (),
    network_activities: Iterable[NetworkActivityEvent] = ()
) -> Dataset:
    """Build a Dataset from already-typed records (last write wins)."""
    return Dataset(
        search_window=search_window,
        catalog=EntityCatalog(
            ports={p.id: p for p in ports},
            processes={p.id: p for p in processes},
            files={f.id: f for f in files},
            endpoints={e.id: e for e in endpoints},
        ),
        events=RawEventStore(
            file_versions={e.id: e for e in file_versions},
            network_activities={e.id: e for e in network_activities},
        )
    )


__all__ = [
    'EntityCatalog', 'RawEventStore', 'Dataset',
    'parse_analysis_data', 'build_dataset',
]
