"""Run the courses API under uvicorn.

Usage:
    python -m courses_api.serve
"""
import uvicorn

from courses_api.core import config


def main() -> None:
    uvicorn.run(
        "courses_api.main:app",
        host=config.HOST,
        port=config.PORT,
        log_level=config.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    main()
