"""Process entrypoint.

The same application serves the orchestrator endpoints and, when
STORYREEL_ENABLE_WORKER_API is set, the worker endpoint. A worker pool is a
set of these processes on different ports.
"""

import os

import uvicorn

from storyreel.config import get_settings


def main() -> None:
    settings = get_settings()
    port = int(os.environ.get("PORT", 8000))
    uvicorn.run(
        "storyreel.main:app",
        host=os.environ.get("HOST", "0.0.0.0"),
        port=port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
