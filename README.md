# diegorep

Building blocks for a container cell representative ("rep"):

- turning container tags and container state into LRP keys and network info,
- rewriting preloaded root filesystems for two-layer images,
- converting workload descriptions (cached dependencies, volume mounts,
  networks, sidecars, ports) into executor container terms,
- reading and writing the rep's JSON configuration,
- start-up checks such as the advertised URL and the server certificate,
- running a rep binary as a child process,
- a tiny HTTP(S) client, `gocurl`, for health and drain probes.

## Installation

```
pip install .
```

For running the tests:

```
pip install ".[test]"
pytest
```

## Probing an endpoint

The `gocurl` command sends a single GET or POST request and writes the
response body to standard output. It exits with status 1 and a message on
standard error if the URL is missing, the method is neither GET nor POST,
the request fails or times out, or the status code is outside 200–299.

```
gocurl http://127.0.0.1:1800/ping
gocurl -X POST http://127.0.0.1:1800/evacuate
gocurl -H Custom=something http://127.0.0.1:1800/ping
gocurl -max-time 0.5s http://127.0.0.1:1800/ping
gocurl --cacert ca.crt --cert client.crt --key client.key https://127.0.0.1:1800/ping
```

`-H` takes `Name=value`. `-max-time` takes a duration such as `500ms` or
`2s`; `0` (the default) means no timeout. Giving any of `--cacert`,
`--cert` or `--key` switches on a client TLS setup (TLS 1.2 or later),
which needs all three.

From Python, `diegorep.gocurl.parse_args(argv)` parses the same options and
`diegorep.gocurl.fetch(url, method, header, timeout, cacert, cert, key)`
returns the body as bytes; failures raise `GocurlError`.

## Converting container state

```python
from diegorep.conversion import actual_lrp_key_from_tags, convert_preloaded_rootfs

key = actual_lrp_key_from_tags({
    "process-guid": "process-guid",
    "process-index": "999",
    "domain": "my-domain",
})
```

`actual_lrp_key_from_tags` raises `ContainerMissingTagsError`,
`InvalidProcessIndexError` or `IntegerOverflowError` for bad tags, and a
`ValidationError` from `diegorep.models` when the resulting key is
incomplete. `actual_lrp_instance_key_from_container(container, cell_id)`
and `actual_lrp_net_info_from_container(container)` work on a
`diegorep.models.Container` in the same way.

`convert_preloaded_rootfs(root_fs, image_layers, "two-layer")` turns a
`preloaded:` root filesystem into a `preloaded+layer:` one, folding in the
first exclusive, tgz, sha256 image layer and dropping it from the list. In
any other case the inputs come back unchanged.

The other helpers in `diegorep.conversion` — `convert_cached_dependencies`,
`convert_volume_mounts` (which parses the JSON mount config and accepts the
modes `r` and `rw`, raising `ValueError` otherwise), `convert_network`,
`convert_certificate_properties`, `convert_sidecars`,
`convert_log_rate_limit` (`-1` when no limit is set) and
`convert_port_mappings` — map the dataclasses of `diegorep.models` onto
their `Container*` counterparts.

## Configuration

```python
from diegorep.config import load_rep_config

config = load_rep_config("/var/vcap/jobs/rep/config/rep.json")
print(config.cell_id, config.preloaded_rootfs.stack_path_map())
```

Durations such as `"11s"` or `"2m"` are read with `parse_duration` and held
in seconds; `format_duration` writes them back. `preloaded_root_fs` entries
must have the form `stack-name:path`. Keys that `RepConfig` does not model
are kept in its `extra` dictionary, and `RepConfig.to_dict()` returns the
JSON document again. A file that cannot be opened raises `OSError`; a
malformed one raises `ConfigError`.

## Start-up helpers

`diegorep.cell` holds the checks and values the rep works out at start-up:

- `rep_host(cell_id)` and `rep_url(config)` — the advertised
  `https://<cell-id>.<domain>:<port>` URL, with underscores turned into dashes;
- `rep_address(config, ip=None)` — the plain `http://<ip>:<port>` address,
  looking up the local IP when none is given;
- `verify_certificate(path)` — the first certificate in the PEM file must
  carry 127.0.0.1 as an IP SAN, otherwise `CertificateError`;
- `sidecar_rootfs_path(config, rootfs_map)` — the configured sidecar rootfs,
  else the first preloaded one;
- `add_extra_rootfses(directory, rootfs_map)` — adds every `.tar` file under
  a directory to the map, keyed by its name without the extension.

## Running a rep binary

`diegorep.testrunner.Runner(bin_path, rep_config)` writes the configuration
to a temporary JSON file and starts `bin_path --config <file>` on `start()`.
`stop()` interrupts the process and `kill_with_fire()` kills it; both remove
the file and wait up to five seconds. Starting a runner whose process is
still alive raises `RunnerAlreadyStartedError`.

## What this package does not do

It is not a rep itself: it has no server for the cell's HTTP endpoints, no
executor or container backend, no scheduler (BBS) or presence (locket)
client, and no auction or evacuation logic. It provides the conversions,
configuration handling and checks such a program is built from, and a way to
run and probe a separate rep binary.