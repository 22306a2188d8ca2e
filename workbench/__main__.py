"""Run the workbench tool server with uvicorn."""

from __future__ import annotations

import logging
import os

import uvicorn

from workbench.config import load_config


def main() -> None:
    logging.basicConfig(
        level=os.environ.get("WORKBENCH_LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    config = load_config()
    uvicorn.run("workbench.main:app", host=config.host, port=config.port)


if __name__ == "__main__":
    main()
