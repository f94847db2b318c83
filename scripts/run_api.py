"""Run the FastAPI allocation service for the robot fleet."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

import uvicorn

from src.allocation.bootstrap import build_allocation_service
from src.allocation.errors import DuplicateIdError
from src.api.server import create_app
from src.environment.probability import StoreFailure
from src.fleet.config import load_config
from src.fleet.registry import RegistryLoadError

logger = logging.getLogger("allocator")


def main() -> None:
    parser = argparse.ArgumentParser(description="Run fleet task allocation API server")
    parser.add_argument("--config", type=str, default="config/default_allocator.yaml")
    parser.add_argument("--host", type=str, default=None, help="Overrides service.host")
    parser.add_argument("--port", type=int, default=None, help="Overrides service.port")
    parser.add_argument("--log-level", type=str, default="INFO")
    args = parser.parse_args()

    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )

    config = load_config(Path(args.config))
    try:
        runtime = build_allocation_service(config)
    except (RegistryLoadError, DuplicateIdError, StoreFailure) as exc:
        logger.error("Startup failed: %s", exc)
        sys.exit(1)

    app = create_app(runtime)
    uvicorn.run(
        app,
        host=args.host or config.service.host,
        port=args.port or config.service.port,
    )


if __name__ == "__main__":
    main()
