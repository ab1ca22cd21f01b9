"""Start-up helpers of the cell representative: addresses, certificates, rootfses."""

from __future__ import annotations

import base64
import binascii
import ipaddress
import os
import re
import socket
from collections.abc import Mapping, MutableMapping

from cryptography import x509

from .config import RepConfig

_LOOPBACK = ipaddress.ip_address("127.0.0.1")
_PEM_BLOCK = re.compile(
    rb"-----BEGIN ([^\r\n]*?)-----[ \t]*\r?\n(.*?)-----END \1-----[ \t]*(?:\r?\n|$)",
    re.S,
)


class CertificateError(ValueError):
    """Raised when the server certificate cannot be used by the local server."""


def rep_host(cell_id: str) -> str:
    """Turn a cell id into a host name label by replacing underscores."""
    return cell_id.replace("_", "-")


def _port(address: str, what: str) -> str:
    parts = address.split(":")
    if len(parts) < 2:
        raise ValueError(f"{what} {address!r} has no port")
    return parts[1]


def rep_url(config: RepConfig) -> str:
    """Return the https URL under which the cell advertises itself."""
    port = _port(config.listen_addr_securable, "listen_addr_securable")
    return f"https://{rep_host(config.cell_id)}.{config.advertise_domain}:{port}"


def _local_ip() -> str:
    with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sock:
        sock.connect(("8.8.8.8", 53))
        return sock.getsockname()[0]


def rep_address(config: RepConfig, ip: str | None = None) -> str:
    """Return the plain http address of the local server; looks up the IP if none is given."""
    port = _port(config.listen_addr, "listen_addr")
    if ip is None:
        ip = _local_ip()
    return f"http://{ip}:{port}"


def _pem_blocks(data: bytes) -> list[bytes]:
    blocks: list[bytes] = []
    rest = data
    while True:
        match = _PEM_BLOCK.search(rest)
        if match is None:
            raise CertificateError("failed parsing cert")
        lines = [line for line in match.group(2).splitlines() if b":" not in line]
        try:
            blocks.append(base64.b64decode(b"".join(b"".join(lines).split()), validate=True))
        except (binascii.Error, ValueError) as exc:
            raise CertificateError("failed parsing cert") from exc
        rest = rest[match.end():]
        if not rest:
            return blocks


def _is_loopback(ip: ipaddress.IPv4Address | ipaddress.IPv6Address) -> bool:
    if ip == _LOOPBACK:
        return True
    return isinstance(ip, ipaddress.IPv6Address) and ip.ipv4_mapped == _LOOPBACK


def verify_certificate(path: str) -> list[x509.Certificate]:
    """Check that the first certificate in a PEM file names 127.0.0.1 as an IP SAN.

    Returns the parsed certificates; raises CertificateError otherwise and
    OSError when the file cannot be read.
    """
    with open(path, "rb") as handle:
        data = handle.read().strip()

    certificates = []
    for der in _pem_blocks(data):
        try:
            certificates.append(x509.load_der_x509_certificate(der))
        except ValueError as exc:
            raise CertificateError(f"failed parsing cert: {exc}") from exc

    try:
        san = certificates[0].extensions.get_extension_for_class(x509.SubjectAlternativeName)
        addresses = san.value.get_values_for_type(x509.IPAddress)
    except x509.ExtensionNotFound:
        addresses = []
    if any(_is_loopback(ip) for ip in addresses):
        return certificates
    raise CertificateError(
        "invalid SAN metadata. certificate needs to contain 127.0.0.1 for IP SAN metadata."
    )


def sidecar_rootfs_path(config: RepConfig, rootfs_map: Mapping[str, str]) -> str:
    """Return the configured sidecar rootfs, else the first preloaded one, else ''."""
    if config.sidecar_rootfs_path:
        return config.sidecar_rootfs_path
    return next(iter(rootfs_map.values()), "")


def _ext(path: str) -> str:
    base = os.path.basename(path)
    dot = base.rfind(".")
    return base[dot:] if dot >= 0 else ""


def _visit(path: str, is_dir: bool, rootfs_map: MutableMapping[str, str]) -> None:
    ext = _ext(path)
    if ext.lower() == ".tar":
        base = os.path.basename(path)
        rootfs_map[base[: len(base) - len(ext)]] = path
    if not is_dir:
        return
    with os.scandir(path) as entries:
        children = sorted(entries, key=lambda entry: entry.name)
    for child in children:
        _visit(child.path, child.is_dir(follow_symlinks=False), rootfs_map)


def add_extra_rootfses(
    directory: str, rootfs_map: MutableMapping[str, str]
) -> MutableMapping[str, str]:
    """Add every ``*.tar`` under a directory to the map, keyed by its base name.

    The map is updated in place and returned. Entries found before a
    filesystem error are kept; the OSError is then raised.
    """
    root_is_dir = os.path.isdir(directory) and not os.path.islink(directory)
    os.lstat(directory)
    _visit(directory, root_is_dir, rootfs_map)
    return rootfs_map