import uvicorn

from .api.server import create_app
from .infrastructure.config.config_loader import get_settings_from_working_directory


def main() -> None:
    settings = get_settings_from_working_directory()
    app = create_app(settings)
    # Signal handling and graceful stop are uvicorn's; the app lifespan
    # closes remaining connections
    uvicorn.run(app, host=settings.server.host, port=settings.server.port, log_level=settings.logging.level.value.lower())


if __name__ == "__main__":
    main()
