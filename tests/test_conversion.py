from urllib.parse import quote_plus

import pytest

from diegorep import conversion as rep
from diegorep.models import (
    ActualLRPInstanceKey,
    ActualLRPKey,
    ActualLRPNetInfo,
    BindMountMode,
    CachedDependency,
    CertificateProperties,
    Container,
    ContainerCachedDependency,
    ContainerCertificateProperties,
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
    SharedDevice,
    Sidecar,
    ValidationError,
    VolumeMount,
)


@pytest.fixture
def tags():
    return {
        rep.LIFECYCLE_TAG: rep.LRP_LIFECYCLE,
        rep.DOMAIN_TAG: "my-domain",
        rep.PROCESS_GUID_TAG: "process-guid",
        rep.PROCESS_INDEX_TAG: "999",
    }


def test_key_from_valid_tags(tags):
    key = rep.actual_lrp_key_from_tags(tags)
    assert key == ActualLRPKey(process_guid="process-guid", index=999, domain="my-domain")


def test_key_from_no_tags():
    with pytest.raises(rep.ContainerMissingTagsError):
        rep.actual_lrp_key_from_tags(None)


def test_key_missing_process_guid(tags):
    del tags[rep.PROCESS_GUID_TAG]
    with pytest.raises(ValidationError, match="process_guid"):
        rep.actual_lrp_key_from_tags(tags)


def test_key_index_not_a_number(tags):
    tags[rep.PROCESS_INDEX_TAG] = "hi there"
    with pytest.raises(rep.InvalidProcessIndexError):
        rep.actual_lrp_key_from_tags(tags)


def test_key_index_overflow(tags):
    tags[rep.PROCESS_INDEX_TAG] = str(2**31 - 1 + 1)
    with pytest.raises(rep.IntegerOverflowError):
        rep.actual_lrp_key_from_tags(tags)


@pytest.fixture
def container():
    return Container(
        guid="container-guid",
        tags={
            rep.LIFECYCLE_TAG: rep.LRP_LIFECYCLE,
            rep.DOMAIN_TAG: "my-domain",
            rep.PROCESS_GUID_TAG: "process-guid",
            rep.PROCESS_INDEX_TAG: "999",
            rep.INSTANCE_GUID_TAG: "some-instance-guid",
        },
        external_ip="some-external-ip",
        internal_ip="container-ip",
        advertise_preference_for_instance_address=True,
        ports=[ContainerPortMapping(container_port=1234, host_port=6789)],
    )


def test_instance_key_from_container(container):
    key = rep.actual_lrp_instance_key_from_container(container, "the-cell-id")
    assert key == ActualLRPInstanceKey(instance_guid="some-instance-guid", cell_id="the-cell-id")


def test_instance_key_no_tags(container):
    container.tags = None
    with pytest.raises(rep.ContainerMissingTagsError):
        rep.actual_lrp_instance_key_from_container(container, "the-cell-id")


def test_instance_key_missing_instance_guid(container):
    del container.tags[rep.INSTANCE_GUID_TAG]
    with pytest.raises(ValidationError, match="instance_guid"):
        rep.actual_lrp_instance_key_from_container(container, "the-cell-id")


def test_instance_key_blank_cell_id(container):
    with pytest.raises(ValidationError, match="cell_id"):
        rep.actual_lrp_instance_key_from_container(container, "")


def test_net_info_from_container(container):
    info = rep.actual_lrp_net_info_from_container(container)
    assert info == ActualLRPNetInfo(
        address="some-external-ip",
        instance_address="container-ip",
        preferred_address=PreferredAddress.INSTANCE,
        ports=[PortMapping(container_port=1234, host_port=6789)],
    )


def test_net_info_prefers_host(container):
    container.advertise_preference_for_instance_address = False
    info = rep.actual_lrp_net_info_from_container(container)
    assert info.preferred_address is PreferredAddress.HOST


def test_net_info_without_ports(container):
    container.ports = []
    info = rep.actual_lrp_net_info_from_container(container)
    assert info.ports == []


def test_net_info_invalid_host(container):
    container.external_ip = ""
    with pytest.raises(ValidationError, match="address"):
        rep.actual_lrp_net_info_from_container(container)


def test_lrp_container_guid_is_instance_guid():
    assert rep.lrp_container_guid("the-process-guid", "some-instance-guid") == "some-instance-guid"


@pytest.fixture
def image_layers():
    return [
        ImageLayer(
            name="bpal-tgz",
            url="http://file-server.service.cf.internal:8080/v1/static/buildpack_app_lifecycle/buildpack_app_lifecycle.tgz",
            destination_path="/tmp/lifecycle",
            layer_type=LayerType.SHARED,
            media_type=MediaType.TGZ,
        ),
        ImageLayer(
            name="bpal-tar",
            url="http://file-server.internal/buildpack_app_lifecycle/b.tar",
            destination_path="/tmp/lifecycle2",
            digest_algorithm=DigestAlgorithm.SHA512,
            digest_value="long-digest",
            layer_type=LayerType.EXCLUSIVE,
            media_type=MediaType.TAR,
        ),
        ImageLayer(
            name="droplet",
            url="https://droplet.com/download",
            digest_algorithm=DigestAlgorithm.SHA256,
            digest_value="the-real-digest",
            destination_path="/home/vcap",
            layer_type=LayerType.EXCLUSIVE,
            media_type=MediaType.TGZ,
        ),
        ImageLayer(
            name="ruby_buildpack",
            url="https://blobstore.internal/ruby_buildpack.zip",
            destination_path="/tmp/buildpacks/ruby_buildpack",
            digest_algorithm=DigestAlgorithm.SHA256,
            digest_value="ruby-buildpack-digest",
            layer_type=LayerType.EXCLUSIVE,
            media_type=MediaType.ZIP,
        ),
    ]


UNCHANGED_ROOTFSES = [
    "preloaded+layer:cflinuxfs3?layer=https://blobstore.internal/layer1.tgz?layer_path=/tmp/asset1&layer_digest=asdlfkjsf",
    "docker:///cloudfoundry/grace",
]


@pytest.mark.parametrize("root_fs", UNCHANGED_ROOTFSES + ["preloaded:cflinuxfs3"])
def test_single_layer_never_converts(root_fs, image_layers):
    new_root_fs, new_layers = rep.convert_preloaded_rootfs(
        root_fs, image_layers, rep.LAYERING_MODE_SINGLE_LAYER
    )
    assert new_root_fs == root_fs
    assert new_layers == image_layers


@pytest.mark.parametrize("root_fs", UNCHANGED_ROOTFSES)
def test_two_layer_leaves_non_preloaded(root_fs, image_layers):
    new_root_fs, new_layers = rep.convert_preloaded_rootfs(
        root_fs, image_layers, rep.LAYERING_MODE_TWO_LAYER
    )
    assert new_root_fs == root_fs
    assert new_layers == image_layers


def test_two_layer_converts_preloaded(image_layers):
    new_root_fs, new_layers = rep.convert_preloaded_rootfs(
        "preloaded:cflinuxfs3", image_layers, rep.LAYERING_MODE_TWO_LAYER
    )
    expected = "preloaded+layer:cflinuxfs3?layer={}&layer_path={}&layer_digest=the-real-digest".format(
        quote_plus("https://droplet.com/download", safe=""),
        quote_plus("/home/vcap", safe=""),
    )
    assert new_root_fs == expected
    assert new_layers == [image_layers[0], image_layers[1], image_layers[3]]


def test_two_layer_escaped_values_pinned(image_layers):
    new_root_fs, _ = rep.convert_preloaded_rootfs(
        "preloaded:cflinuxfs3", image_layers, rep.LAYERING_MODE_TWO_LAYER
    )
    assert "layer=https%3A%2F%2Fdroplet.com%2Fdownload" in new_root_fs
    assert "layer_path=%2Fhome%2Fvcap" in new_root_fs


def test_two_layer_only_shared_layers(image_layers):
    for layer in image_layers[1:]:
        layer.layer_type = LayerType.SHARED
    new_root_fs, new_layers = rep.convert_preloaded_rootfs(
        "preloaded:cflinuxfs3", image_layers, rep.LAYERING_MODE_TWO_LAYER
    )
    assert new_root_fs == "preloaded:cflinuxfs3"
    assert new_layers == image_layers


def test_two_layer_no_tgz_layer(image_layers):
    image_layers[2].media_type = MediaType.ZIP
    new_root_fs, new_layers = rep.convert_preloaded_rootfs(
        "preloaded:cflinuxfs3", image_layers, rep.LAYERING_MODE_TWO_LAYER
    )
    assert new_root_fs == "preloaded:cflinuxfs3"
    assert new_layers == image_layers


def test_two_layer_no_sha256_layer(image_layers):
    image_layers[2].digest_algorithm = DigestAlgorithm.INVALID
    new_root_fs, new_layers = rep.convert_preloaded_rootfs(
        "preloaded:cflinuxfs3", image_layers, rep.LAYERING_MODE_TWO_LAYER
    )
    assert new_root_fs == "preloaded:cflinuxfs3"
    assert new_layers == image_layers


def test_convert_cached_dependencies():
    deps = [
        CachedDependency(
            name="app bits",
            from_="blobstore.com/bits/app-bits",
            to="/usr/local/app",
            cache_key="cache-key",
            log_source="log-source",
        ),
        CachedDependency(
            name="app bits with checksum",
            from_="blobstore.com/bits/app-bits-checksum",
            to="/usr/local/app-checksum",
            cache_key="cache-key",
            log_source="log-source",
            checksum_algorithm="md5",
            checksum_value="checksum-value",
        ),
    ]
    assert rep.convert_cached_dependencies(deps) == [
        ContainerCachedDependency(
            name="app bits",
            from_="blobstore.com/bits/app-bits",
            to="/usr/local/app",
            cache_key="cache-key",
            log_source="log-source",
        ),
        ContainerCachedDependency(
            name="app bits with checksum",
            from_="blobstore.com/bits/app-bits-checksum",
            to="/usr/local/app-checksum",
            cache_key="cache-key",
            log_source="log-source",
            checksum_algorithm="md5",
            checksum_value="checksum-value",
        ),
    ]
    assert rep.convert_cached_dependencies(None) == []


def _volume_mount(config='{"foo":"bar"}', mode="r"):
    return VolumeMount(
        driver="my-driver",
        container_dir="/mnt/mypath",
        mode=mode,
        shared=SharedDevice(volume_id="my-volume", mount_config=config),
    )


def test_convert_volume_mounts():
    assert rep.convert_volume_mounts([_volume_mount()]) == [
        ContainerVolumeMount(
            driver="my-driver",
            volume_id="my-volume",
            container_path="/mnt/mypath",
            config={"foo": "bar"},
            mode=BindMountMode.RO,
        )
    ]


def test_convert_volume_mount_rw_without_config():
    mount = rep.convert_volume_mount(_volume_mount(config="", mode="rw"))
    assert mount.mode is BindMountMode.RW
    assert mount.config is None


def test_convert_volume_mount_invalid_config():
    with pytest.raises(ValueError):
        rep.convert_volume_mounts([_volume_mount(config="{{")])


def test_convert_volume_mount_unknown_mode():
    with pytest.raises(ValueError, match="unrecognized volume mount mode"):
        rep.convert_volume_mount(_volume_mount(mode="x"))


def test_convert_network():
    props = {"some-key": "some-value", "some-other-key": "some-other-value"}
    assert rep.convert_network(Network(properties=props)).properties == props
    assert rep.convert_network(None) is None


def test_convert_certificate_properties():
    units = ["iamthelizardking", "iamthelizardqueen"]
    result = rep.convert_certificate_properties(CertificateProperties(organizational_unit=units))
    assert result.organizational_unit == units
    assert rep.convert_certificate_properties(None) == ContainerCertificateProperties()


def test_convert_sidecars():
    sidecars = [
        Sidecar(action={"run": "sidecar-1"}, memory_mb=3, disk_mb=4),
        Sidecar(action={"run": "sidecar-2"}, memory_mb=5, disk_mb=6),
    ]
    assert rep.convert_sidecars(sidecars) == [
        ContainerSidecar(action={"run": "sidecar-1"}, memory_mb=3, disk_mb=4),
        ContainerSidecar(action={"run": "sidecar-2"}, memory_mb=5, disk_mb=6),
    ]
    assert rep.convert_sidecars(None) == []


def test_convert_log_rate_limit():
    assert rep.convert_log_rate_limit(None) == -1
    assert rep.convert_log_rate_limit(LogRateLimit(bytes_per_second=-1)) == -1
    assert rep.convert_log_rate_limit(LogRateLimit(bytes_per_second=2048)) == 2048


def test_convert_port_mappings():
    assert rep.convert_port_mappings([8080]) == [ContainerPortMapping(container_port=8080)]
    assert rep.convert_port_mappings(None) == []