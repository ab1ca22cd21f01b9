"""Data models for LRPs, tasks and executor containers."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any


class ValidationError(ValueError):
    """Raised when a model fails validation; lists the offending fields."""

    def __init__(self, fields: list[str] | tuple[str, ...]) -> None:
        self.fields = tuple(fields)
        super().__init__("invalid fields: " + ", ".join(self.fields))


def _raise_if_invalid(invalid: list[str]) -> None:
    if invalid:
        raise ValidationError(invalid)


@dataclass
class ActualLRPKey:
    """Identifies one instance slot of a long-running process."""

    process_guid: str = ""
    index: int = 0
    domain: str = ""

    def validate(self) -> None:
        """Raise ValidationError if a required field is missing or invalid."""
        invalid = []
        if not self.process_guid:
            invalid.append("process_guid")
        if self.index < 0:
            invalid.append("index")
        if not self.domain:
            invalid.append("domain")
        _raise_if_invalid(invalid)


@dataclass
class ActualLRPInstanceKey:
    """Identifies a running LRP instance on a specific cell."""

    instance_guid: str = ""
    cell_id: str = ""

    def validate(self) -> None:
        """Raise ValidationError if the instance guid or cell id is blank."""
        invalid = []
        if not self.instance_guid:
            invalid.append("instance_guid")
        if not self.cell_id:
            invalid.append("cell_id")
        _raise_if_invalid(invalid)


@dataclass
class PortMapping:
    """A host-to-container port mapping as reported to the BBS."""

    container_port: int = 0
    host_port: int = 0
    container_tls_proxy_port: int = 0
    host_tls_proxy_port: int = 0


class PreferredAddress(enum.Enum):
    UNKNOWN = "UNKNOWN"
    INSTANCE = "INSTANCE"
    HOST = "HOST"


@dataclass
class ActualLRPNetInfo:
    """Networking information of a running LRP instance."""

    address: str = ""
    instance_address: str = ""
    preferred_address: PreferredAddress = PreferredAddress.UNKNOWN
    ports: list[PortMapping] = field(default_factory=list)

    def validate(self) -> None:
        """Raise ValidationError if the host address is blank."""
        invalid = []
        if not self.address:
            invalid.append("address")
        _raise_if_invalid(invalid)


class LayerType(enum.Enum):
    INVALID = "INVALID"
    SHARED = "SHARED"
    EXCLUSIVE = "EXCLUSIVE"


class MediaType(enum.Enum):
    INVALID = "INVALID"
    TGZ = "TGZ"
    TAR = "TAR"
    ZIP = "ZIP"


class DigestAlgorithm(enum.Enum):
    INVALID = "INVALID"
    SHA256 = "SHA256"
    SHA512 = "SHA512"


@dataclass
class ImageLayer:
    """A layer of a container image to download into the container."""

    name: str = ""
    url: str = ""
    destination_path: str = ""
    layer_type: LayerType = LayerType.INVALID
    media_type: MediaType = MediaType.INVALID
    digest_algorithm: DigestAlgorithm = DigestAlgorithm.INVALID
    digest_value: str = ""


@dataclass
class CachedDependency:
    """A cached download as described by the desired workload."""

    name: str = ""
    from_: str = ""
    to: str = ""
    cache_key: str = ""
    log_source: str = ""
    checksum_algorithm: str = ""
    checksum_value: str = ""


@dataclass
class SharedDevice:
    volume_id: str = ""
    mount_config: str = ""


@dataclass
class VolumeMount:
    """A volume mount as described by the desired workload."""

    driver: str = ""
    container_dir: str = ""
    mode: str = ""
    shared: SharedDevice = field(default_factory=SharedDevice)


@dataclass
class Network:
    properties: dict[str, str] = field(default_factory=dict)


@dataclass
class CertificateProperties:
    organizational_unit: list[str] = field(default_factory=list)


@dataclass
class LogRateLimit:
    bytes_per_second: int = 0


@dataclass
class Sidecar:
    action: Any = None
    memory_mb: int = 0
    disk_mb: int = 0


class BindMountMode(enum.Enum):
    RO = "ro"
    RW = "rw"


@dataclass
class ContainerPortMapping:
    """A port mapping of an executor container."""

    container_port: int = 0
    host_port: int = 0
    container_tls_proxy_port: int = 0
    host_tls_proxy_port: int = 0


@dataclass
class ContainerCachedDependency:
    """A cached download in the executor's terms."""

    name: str = ""
    from_: str = ""
    to: str = ""
    cache_key: str = ""
    log_source: str = ""
    checksum_algorithm: str = ""
    checksum_value: str = ""


@dataclass
class ContainerVolumeMount:
    """A volume mount in the executor's terms."""

    driver: str = ""
    volume_id: str = ""
    container_path: str = ""
    mode: BindMountMode = BindMountMode.RO
    config: dict[str, Any] | None = None


@dataclass
class ContainerNetwork:
    properties: dict[str, str] = field(default_factory=dict)


@dataclass
class ContainerCertificateProperties:
    organizational_unit: list[str] = field(default_factory=list)


@dataclass
class ContainerSidecar:
    action: Any = None
    memory_mb: int = 0
    disk_mb: int = 0


@dataclass
class Container:
    """An executor container as seen by the cell."""

    guid: str = ""
    tags: dict[str, str] | None = None
    external_ip: str = ""
    internal_ip: str = ""
    advertise_preference_for_instance_address: bool = False
    ports: list[ContainerPortMapping] = field(default_factory=list)