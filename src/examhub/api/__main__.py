"""Run the ExamHub API server."""

import uvicorn

from examhub.config import Settings
from examhub.logging import setup_logging


def main() -> None:
    settings = Settings.from_env()
    setup_logging(settings)
    uvicorn.run("examhub.api.app:app", host="127.0.0.1", port=8000)


if __name__ == "__main__":
    main()
