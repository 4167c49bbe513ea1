import asyncio
import logging
import sys
from typing import Optional

from userapi.config import Settings, load_settings
from userapi.exceptions import BindFailure
from userapi.handler.cors import CorsPolicy
from userapi.handler.router import Router
from userapi.pipeline import Pipeline, build_pipeline
from userapi.resources.users import UserResource
from userapi.server.server import HTTPServer

logger = logging.getLogger("httpserver")


def setup_logging(level: str):
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s [%(process)d] [%(levelname)s] %(message)s",
    )


def create_app(settings: Optional[Settings] = None) -> Pipeline:
    settings = settings or Settings()
    router = Router()
    UserResource().register(router)
    cors = CorsPolicy(
        origins=settings.cors_origins, credentials=settings.cors_credentials
    )
    return build_pipeline(router, cors=cors, body_limit=settings.body_limit)


def create_server(settings: Settings) -> HTTPServer:
    return HTTPServer(
        create_app(settings),
        server_address=(settings.host, settings.port),
        logger=logger,
        body_limit=settings.body_limit,
    )


def main():
    settings = load_settings()
    setup_logging(settings.log_level)

    server = create_server(settings)
    try:
        asyncio.run(server.serve_forever())
    except BindFailure as e:
        logger.error(f"Error: {e}")
        sys.exit(1)
    except KeyboardInterrupt:
        logger.info("Interrupted, exiting")


if __name__ == "__main__":
    main()
