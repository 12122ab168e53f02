from __future__ import annotations

import argparse

import uvicorn
from loguru import logger

from gatecheck.config import load_settings
from gatecheck.logging_config import configure_logging


def main(argv: list[str] | None = None) -> None:
    settings = load_settings()
    parser = argparse.ArgumentParser(prog="gatecheck", description="Run the GateCheck check-in API.")
    parser.add_argument("port", nargs="?", type=int, default=settings.port)
    parser.add_argument("--host", default=settings.host)
    args = parser.parse_args(argv)

    configure_logging(settings.log_level)
    logger.info("GateCheck listening on http://{}:{}/ (data: {})", args.host, args.port, settings.data_dir)
    uvicorn.run("gatecheck.api:app", host=args.host, port=args.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    main()
