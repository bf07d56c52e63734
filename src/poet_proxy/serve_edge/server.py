"""Launch the edge proxy under uvicorn."""
from __future__ import annotations
import os

import uvicorn


def main() -> None:
    host = os.getenv("POET_PROXY_HOST", "0.0.0.0")
    port = int(os.getenv("POET_PROXY_PORT", "8080"))
    workers = int(os.getenv("POET_PROXY_WORKERS", "1"))

    uvicorn.run(
        "poet_proxy.serve_edge.fastapi_app:app",
        host=host,
        port=port,
        workers=workers,
        proxy_headers=True,
    )

if __name__ == "__main__":
    main()
