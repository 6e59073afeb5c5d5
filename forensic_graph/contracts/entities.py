"""
Entity Contracts

The four entity kinds observed by forensic telemetry collectors.
Entities are immutable once loaded for a Search and are only ever
looked up by id.
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import ClassVar, Optional, Tuple, Union


class NodeType(Enum):
    """Entity kinds as they appear in the displayed graph."""
    PORT = "Port"
    PROCESS = "Process"
    FILE = "File"
    ENDPOINT = "Endpoint"


@dataclass(frozen=True)
class Port:
    """
    A network port on a host.

    `process_ids` lists the processes bound to the port. When it is
    None the port is attributed to the host endpoint instead.
    """
    id: str
    port_number: int
    host_name: str
    process_ids: Optional[Tuple[str, ...]] = None

    node_type: ClassVar[NodeType] = NodeType.PORT

    @property
    def owns_process(self) -> bool:
        return bool(self.process_ids)


@dataclass(frozen=True)
class Process:
    """A running process on a host."""
    id: str
    name: str
    host_name: str

    node_type: ClassVar[NodeType] = NodeType.PROCESS


@dataclass(frozen=True)
class File:
    """A file observed on a host."""
    id: str
    path: str
    name: str
    type: str
    host_name: str

    node_type: ClassVar[NodeType] = NodeType.FILE


@dataclass(frozen=True)
class Endpoint:
    """A host endpoint (one per host name)."""
    id: str
    host_name: str
    host_ip: str

    node_type: ClassVar[NodeType] = NodeType.ENDPOINT


Entity = Union[Port, Process, File, Endpoint]
