import uvicorn

from webgen.main import SETTINGS, app


def main() -> None:
    uvicorn.run(app, host=SETTINGS.host, port=SETTINGS.port, log_level="info")


if __name__ == "__main__":
    main()
