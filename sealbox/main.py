import uvicorn

from sealbox.core.app_factory import create_app
from sealbox.core.config import settings
from sealbox.core.logging import configure_logging

configure_logging(settings.log)

app = create_app(settings)


def run() -> None:
    """Serve the app; access logs stay off because they record client addresses."""
    uvicorn.run(
        app,
        host=settings.app.host,
        port=settings.app.port,
        access_log=False,
        log_config=None,
        server_header=False,
    )


if __name__ == "__main__":
    run()
