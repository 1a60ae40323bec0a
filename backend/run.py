#!/usr/bin/env python3
"""
Start the SlideCraft render/export server.
"""

import logging

import uvicorn

from slidecraft.config import get_settings

settings = get_settings()

if __name__ == "__main__":
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger = logging.getLogger("slidecraft")
    logger.info("=" * 50)
    logger.info("SlideCraft")
    logger.info("Starting server at http://%s:%s", settings.host, settings.port)
    logger.info("API Docs: http://localhost:%s/docs", settings.port)
    logger.info("=" * 50)

    uvicorn.run(
        "slidecraft.main:app",
        host=settings.host,
        port=settings.port,
        reload=True,
    )
