"""Run the download proxy: python -m download_proxy"""

import logging

import uvicorn

from .app import create_app
from .config import ProxyConfig

logger = logging.getLogger("download_proxy")


def main() -> None:
    config = ProxyConfig.from_env()
    logging.basicConfig(level=config.log_level)

    logger.info(f"Starting download proxy on :{config.port}...")
    uvicorn.run(
        create_app(config),
        host=config.host,
        port=config.port,
        log_level=config.log_level.lower(),
    )


if __name__ == "__main__":
    main()
