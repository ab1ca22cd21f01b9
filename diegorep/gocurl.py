"""A minimal HTTP client command used to reach the rep's local endpoints."""

from __future__ import annotations

import argparse
import ssl
import sys
import urllib.error
import urllib.request

from .config import ConfigError, parse_duration


class GocurlError(Exception):
    """Raised when a request cannot be made or does not succeed."""


def parse_args(argv: list[str] | None) -> argparse.Namespace:
    """Parse the command line; raises GocurlError unless exactly one URL is given."""
    parser = argparse.ArgumentParser(prog="gocurl")
    parser.add_argument("-cacert", "--cacert", default="", help="CA certificate for API server")
    parser.add_argument("-cert", "--cert", default="", help="TLS certificate for API server")
    parser.add_argument("-key", "--key", default="", help="TLS private key for API server")
    parser.add_argument("-X", dest="method", default="GET", help="HTTP method")
    parser.add_argument(
        "-max-time", "--max-time", dest="max_time", default="0",
        help="Maximum time that you allow the whole operation to take.",
    )
    parser.add_argument("-H", dest="header", default="", help="Custom Header")
    parser.add_argument("urls", nargs="*")
    args = parser.parse_args(argv)
    if len(args.urls) != 1:
        raise GocurlError("Must provide a URL to contact")
    try:
        args.timeout = parse_duration(args.max_time)
    except ConfigError as exc:
        raise GocurlError(str(exc)) from exc
    args.url = args.urls[0]
    return args


def _tls_context(cacert: str, cert: str, key: str) -> ssl.SSLContext:
    try:
        context = ssl.create_default_context(ssl.Purpose.SERVER_AUTH, cafile=cacert)
        context.minimum_version = ssl.TLSVersion.TLSv1_2
        context.load_cert_chain(cert, key)
    except (OSError, ssl.SSLError, ValueError) as exc:
        raise GocurlError(f"TLS config mismatch: {exc}") from exc
    return context


def fetch(
    url: str,
    method: str = "GET",
    header: str = "",
    timeout: float = 0,
    cacert: str = "",
    cert: str = "",
    key: str = "",
) -> bytes:
    """Send a GET or POST request and return the body of a 2xx response."""
    context = _tls_context(cacert, cert, key) if (cacert or cert or key) else None
    if method == "GET":
        data = None
    elif method == "POST":
        data = b""
    else:
        raise GocurlError(
            "Failed to generate request: Currently only supports GET and POST methods"
        )
    try:
        request = urllib.request.Request(url, data=data, method=method)
    except ValueError as exc:
        raise GocurlError(f"Failed to generate request: {exc}") from exc
    if header:
        parts = header.split("=")
        if len(parts) < 2:
            raise GocurlError(f"invalid header {header!r}")
        request.add_header(parts[0], parts[1])

    try:
        with urllib.request.urlopen(
            request, timeout=timeout or None, context=context
        ) as response:
            status = response.status
            if status < 200 or status >= 300:
                raise GocurlError(f"Error talking to {url}: status code {status}")
            try:
                return response.read()
            except OSError as exc:
                raise GocurlError(f"Failed to read body: {exc}") from exc
    except urllib.error.HTTPError as exc:
        raise GocurlError(f"Error talking to {url}: status code {exc.code}") from exc
    except (urllib.error.URLError, OSError, ValueError) as exc:
        raise GocurlError(f"Failed to contact {url}: {exc}") from exc


def main(argv: list[str] | None = None) -> int:
    try:
        args = parse_args(argv)
        body = fetch(
            args.url, args.method, args.header, args.timeout,
            args.cacert, args.cert, args.key,
        )
    except GocurlError as exc:
        print(exc, file=sys.stderr)
        return 1
    sys.stdout.buffer.write(body)
    sys.stdout.flush()
    return 0


if __name__ == "__main__":
    sys.exit(main())