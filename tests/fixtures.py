"""
Telemetry Fixtures

Explicit datasets for pipeline tests.

RULES:
======
1. All fixtures are EXPLICIT, not random (randomized data lives in the
   hypothesis strategies of the property tests)
2. Each fixture documents the numbers its tests rely on
"""

from __future__ import annotations
import copy
from typing import Any, Dict, List, Optional

from forensic_graph.catalog import Dataset, parse_analysis_data
from forensic_graph.contracts import TimeWindow
from forensic_graph.core import AnalysisModel, build_model


MINUTE_MS = 60000


# =============================================================================
# RECORD BUILDERS (upstream payload shape)
# =============================================================================

def port(id: str, number: int, host: str, processes: Optional[List[str]] = None) -> Dict[str, Any]:
    return {"id": id, "portNumber": number, "hostName": host, "processes": processes}


def process(id: str, name: str, host: str = "localhost") -> Dict[str, Any]:
    return {"id": id, "name": name, "hostName": host}


def file(id: str, path: str, type: str, host: str = "localhost") -> Dict[str, Any]:
    return {"id": id, "path": path, "name": path.rsplit("/", 1)[-1], "type": type, "hostName": host}


def endpoint(id: str, host: str, ip: str) -> Dict[str, Any]:
    return {"id": id, "hostName": host, "hostIp": ip}


def file_version(id: str, timestamp: int, source: str, target: str, size: int) -> Dict[str, Any]:
    return {"id": id, "timestamp": timestamp, "source": source, "target": target, "fileSize": size, "action": "write"}


def network_activity(id: str, timestamp: int, source: str, target: str, length: int) -> Dict[str, Any]:
    return {
        "id": id, "timestamp": timestamp, "source": source, "target": target,
        "process": None, "protocol": "TCP", "length": length,
    }


def empty_payload() -> Dict[str, Any]:
    return {
        "ports": [], "processes": [], "files": [], "endpoints": [],
        "fileVersions": [], "networkActivities": [],
    }


# =============================================================================
# STANDARD SCENARIO
# =============================================================================

STANDARD_WINDOW = TimeWindow(0, 3 * MINUTE_MS)

_STANDARD = {
    "endpoints": [
        endpoint("e1", "localhost", "127.0.0.1"),
        endpoint("e2", "remote", "10.0.0.2"),
    ],
    "processes": [
        process("p1", "nginx"),
        process("p2", "backup"),
    ],
    "files": [
        file("f1", "/var/log/access.log", "log"),
        file("f2", "/etc/backup.conf", "conf"),
    ],
    "ports": [
        port("port1", 80, "localhost", ["p1"]),
        port("port2", 5432, "remote"),
        port("port3", 443, "localhost", ["p1"]),
    ],
    "fileVersions": [
        file_version("fv1", 1000, "p1", "f1", 100),
        file_version("fv2", 61000, "p2", "f2", 300),
        file_version("fv3", 125000, "p1", "f1", 100),
    ],
    "networkActivities": [
        network_activity("na1", 2000, "port1", "port2", 400),
        network_activity("na2", 70000, "port2", "port1", 100),
    ],
}


def standard_payload() -> Dict[str, Any]:
    """
    Two hosts, all four entity types, both event kinds.

    Over the whole window [0, 180000) with g = 60000:
    - p1->f1: fv1 (bucket 0) + fv3 (bucket 2) = 200 bytes, proportion 0.4
    - p2->f2: fv2 (bucket 1) = 300 bytes, proportion 0.6
    - port1->port2: na1 (bucket 0) = 400 bytes, proportion 0.8
    - port2->port1: na2 (bucket 1) = 100 bytes, proportion 0.2
    - port links: port1->p1, port2->e2 (no processes), port3->p1
    Endpoint e1 is never touched by a link.
    """
    return copy.deepcopy(_STANDARD)


def standard_dataset() -> Dataset:
    return parse_analysis_data(standard_payload(), STANDARD_WINDOW)


def standard_model(granularity_ms: int = MINUTE_MS) -> AnalysisModel:
    return build_model(standard_dataset(), granularity_ms)


# =============================================================================
# TWO-EVENT SCENARIO
# =============================================================================

def two_event_payload() -> Dict[str, Any]:
    """
    Two 512-byte network activities between portA and portB at
    t=1000 and t=61000: one link, 1024 bytes, buckets {0, 1} at g=60000.
    """
    payload = empty_payload()
    payload["endpoints"] = [endpoint("ea", "hostA", "10.0.0.1"), endpoint("eb", "hostB", "10.0.0.2")]
    payload["ports"] = [port("portA", 8080, "hostA"), port("portB", 9090, "hostB")]
    payload["networkActivities"] = [
        network_activity("n1", 1000, "portA", "portB", 512),
        network_activity("n2", 61000, "portA", "portB", 512),
    ]
    return payload


def two_event_model(granularity_ms: int = MINUTE_MS) -> AnalysisModel:
    return build_model(parse_analysis_data(two_event_payload(), STANDARD_WINDOW), granularity_ms)
