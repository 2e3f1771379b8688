import uvicorn

from portfolio_api.core.app_factory import create_app
from portfolio_api.core.config import settings

app = create_app()


def run() -> None:
    """Serve ``app`` with uvicorn.

    uvicorn adds its own ``server`` header below the ASGI app, where the
    admission middleware cannot strip it, so it is switched off here.
    """
    uvicorn.run(
        app,
        host=settings.app.host,
        port=settings.app.port,
        log_level=settings.log.level.lower(),
        server_header=False,
    )


if __name__ == "__main__":
    run()
