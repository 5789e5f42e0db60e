"""Container healthcheck entrypoint."""
import os
import urllib.request


def _resolve_port() -> int:
    try:
        return int(os.getenv("PORT", "8787"))
    except ValueError:
        return 8787


def main() -> int:
    """Return exit code 0 if the health endpoint answers."""
    port = _resolve_port()
    try:
        urllib.request.urlopen(f"http://127.0.0.1:{port}/", timeout=2)
        return 0
    except OSError:
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
