from __future__ import annotations

import logging

import uvicorn

from pronounce_backend.api.main import app
from pronounce_backend.internal_core.config import load_config


def main() -> None:
    config = load_config()
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    app.state.config = config
    logging.getLogger(__name__).info("Pronounce backend listening on port %s", config.port)
    uvicorn.run(app, host=config.host, port=config.port, log_level=config.log_level.lower())


if __name__ == "__main__":
    main()
