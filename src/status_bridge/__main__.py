"""Run the bridge with uvicorn: ``python -m status_bridge``."""

import uvicorn

from .config import settings


def main() -> None:
    uvicorn.run("status_bridge.app:app", host=settings.http_host, port=settings.http_port)


if __name__ == "__main__":
    main()
