"""Run the Corex proxy: python -m corex"""

import logging

import uvicorn

from corex.config import load_config

config = load_config()
logging.basicConfig(
    level=config.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
uvicorn.run("corex.app:create_app", host=config.host, port=config.port, factory=True)
