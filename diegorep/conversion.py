"""Conversions between workload models and executor containers."""

from __future__ import annotations

import json
import re
from collections.abc import Iterable, Mapping, Sequence
from urllib.parse import quote_plus

from .models import (
    ActualLRPInstanceKey,
    ActualLRPKey,
    ActualLRPNetInfo,
    BindMountMode,
    CachedDependency,
    CertificateProperties,
    Container,
    ContainerCachedDependency,
    ContainerCertificateProperties,
    ContainerNetwork,
    ContainerPortMapping,
    ContainerSidecar,
    ContainerVolumeMount,
    DigestAlgorithm,
    ImageLayer,
    LayerType,
    LogRateLimit,
    MediaType,
    Network,
    PortMapping,
    PreferredAddress,
    Sidecar,
    VolumeMount,
)

LIFECYCLE_TAG = "lifecycle"
RESULT_FILE_TAG = "result-file"
DOMAIN_TAG = "domain"

TASK_LIFECYCLE = "task"
LRP_LIFECYCLE = "lrp"

PROCESS_GUID_TAG = "process-guid"
INSTANCE_GUID_TAG = "instance-guid"
PROCESS_INDEX_TAG = "process-index"

VOLUME_DRIVERS_TAG = "volume-drivers"
PLACEMENT_TAGS_TAG = "placement-tags"

LAYERING_MODE_SINGLE_LAYER = "single-layer"
LAYERING_MODE_TWO_LAYER = "two-layer"

_MAX_INT32 = 2**31 - 1
_MIN_INT64 = -(2**63)
_MAX_INT64 = 2**63 - 1
_DECIMAL = re.compile(r"[+-]?[0-9]+")


class ContainerMissingTagsError(ValueError):
    def __init__(self) -> None:
        super().__init__("container is missing tags")


class InvalidProcessIndexError(ValueError):
    def __init__(self) -> None:
        super().__init__("container does not have a valid process index")


class IntegerOverflowError(OverflowError):
    def __init__(self) -> None:
        super().__init__("integer overflow")


def _parse_int(text: str) -> int:
    if not _DECIMAL.fullmatch(text):
        raise InvalidProcessIndexError()
    value = int(text)
    if not _MIN_INT64 <= value <= _MAX_INT64:
        raise InvalidProcessIndexError()
    return value


def actual_lrp_key_from_tags(tags: Mapping[str, str] | None) -> ActualLRPKey:
    """Build and validate an ActualLRPKey from container tags."""
    if tags is None:
        raise ContainerMissingTagsError()
    index = _parse_int(tags.get(PROCESS_INDEX_TAG, ""))
    if index > _MAX_INT32:
        raise IntegerOverflowError()
    key = ActualLRPKey(
        process_guid=tags.get(PROCESS_GUID_TAG, ""),
        index=index,
        domain=tags.get(DOMAIN_TAG, ""),
    )
    key.validate()
    return key


def actual_lrp_instance_key_from_container(
    container: Container, cell_id: str
) -> ActualLRPInstanceKey:
    """Build and validate an ActualLRPInstanceKey for a container on a cell."""
    if container.tags is None:
        raise ContainerMissingTagsError()
    key = ActualLRPInstanceKey(
        instance_guid=container.tags.get(INSTANCE_GUID_TAG, ""),
        cell_id=cell_id,
    )
    key.validate()
    return key


def actual_lrp_net_info_from_container(container: Container) -> ActualLRPNetInfo:
    """Build and validate the net info advertised for a container."""
    ports = [
        PortMapping(
            container_port=port.container_port,
            host_port=port.host_port,
            container_tls_proxy_port=port.container_tls_proxy_port,
            host_tls_proxy_port=port.host_tls_proxy_port,
        )
        for port in container.ports or ()
    ]
    preferred = (
        PreferredAddress.INSTANCE
        if container.advertise_preference_for_instance_address
        else PreferredAddress.HOST
    )
    net_info = ActualLRPNetInfo(
        address=container.external_ip,
        instance_address=container.internal_ip,
        preferred_address=preferred,
        ports=ports,
    )
    net_info.validate()
    return net_info


def lrp_container_guid(process_guid: str, instance_guid: str) -> str:
    """Return the container guid used for an LRP instance.

    The instance guid alone identifies the container; the process guid is
    accepted for symmetry with the LRP key but does not contribute.
    """
    for name, value in (("process_guid", process_guid), ("instance_guid", instance_guid)):
        if not isinstance(value, str):
            raise TypeError(f"{name} must be a string, not {type(value).__name__}")
    return instance_guid


def _is_suitable_layer(layer: ImageLayer) -> bool:
    return (
        layer.layer_type == LayerType.EXCLUSIVE
        and layer.media_type == MediaType.TGZ
        and layer.digest_algorithm == DigestAlgorithm.SHA256
    )


def convert_preloaded_rootfs(
    root_fs: str,
    image_layers: Sequence[ImageLayer],
    layering_mode: str,
) -> tuple[str, Sequence[ImageLayer]]:
    """Fold the first exclusive sha256 tgz layer into a preloaded rootfs URL.

    Only applies in two-layer mode to ``preloaded:`` rootfses; otherwise the
    inputs come back unchanged.
    """
    if layering_mode != LAYERING_MODE_TWO_LAYER:
        return root_fs, image_layers
    if not root_fs.startswith("preloaded:"):
        return root_fs, image_layers

    remaining: list[ImageLayer] = []
    new_root_fs = ""
    for layer in image_layers:
        if not new_root_fs and _is_suitable_layer(layer):
            stack = root_fs.split(":")[1]
            new_root_fs = "preloaded+layer:{}?layer={}&layer_path={}&layer_digest={}".format(
                stack,
                quote_plus(layer.url, safe=""),
                quote_plus(layer.destination_path, safe=""),
                quote_plus(layer.digest_value, safe=""),
            )
            continue
        remaining.append(layer)

    if not new_root_fs:
        return root_fs, image_layers
    return new_root_fs, remaining


def convert_cached_dependency(dep: CachedDependency) -> ContainerCachedDependency:
    return ContainerCachedDependency(
        name=dep.name,
        from_=dep.from_,
        to=dep.to,
        cache_key=dep.cache_key,
        log_source=dep.log_source,
        checksum_value=dep.checksum_value,
        checksum_algorithm=dep.checksum_algorithm,
    )


def convert_cached_dependencies(
    deps: Iterable[CachedDependency] | None,
) -> list[ContainerCachedDependency]:
    return [convert_cached_dependency(dep) for dep in deps or ()]


_BIND_MODES = {"r": BindMountMode.RO, "rw": BindMountMode.RW}


def convert_volume_mount(mount: VolumeMount) -> ContainerVolumeMount:
    """Convert a volume mount, parsing its JSON mount config.

    Raises ValueError for malformed config or an unknown mode.
    """
    config = None
    if mount.shared.mount_config:
        config = json.loads(mount.shared.mount_config)
        if config is not None and not isinstance(config, dict):
            raise ValueError("volume mount config must be a JSON object")

    mode = _BIND_MODES.get(mount.mode)
    if mode is None:
        raise ValueError("unrecognized volume mount mode")

    return ContainerVolumeMount(
        driver=mount.driver,
        volume_id=mount.shared.volume_id,
        container_path=mount.container_dir,
        mode=mode,
        config=config,
    )


def convert_volume_mounts(mounts: Iterable[VolumeMount] | None) -> list[ContainerVolumeMount]:
    return [convert_volume_mount(mount) for mount in mounts or ()]


def convert_network(network: Network | None) -> ContainerNetwork | None:
    if network is None:
        return None
    return ContainerNetwork(properties=network.properties)


def convert_certificate_properties(
    props: CertificateProperties | None,
) -> ContainerCertificateProperties:
    if props is None:
        return ContainerCertificateProperties()
    return ContainerCertificateProperties(organizational_unit=props.organizational_unit)


def convert_sidecars(sidecars: Iterable[Sidecar] | None) -> list[ContainerSidecar]:
    return [
        ContainerSidecar(action=s.action, memory_mb=s.memory_mb, disk_mb=s.disk_mb)
        for s in sidecars or ()
    ]


def convert_log_rate_limit(limit: LogRateLimit | None) -> int:
    """Return the byte rate limit, or -1 when none is set."""
    if limit is None:
        return -1
    return limit.bytes_per_second


def convert_port_mappings(ports: Iterable[int] | None) -> list[ContainerPortMapping]:
    """Map container port numbers to executor port mappings (16-bit)."""
    return [ContainerPortMapping(container_port=port & 0xFFFF) for port in ports or ()]