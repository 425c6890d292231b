"""Development server entry point."""
import sys
import uvicorn

from pensive.logging_config import configure_logging


def main():
    """Run the development server with auto-reload."""
    configure_logging()
    uvicorn.run(
        "pensive.main:app",
        host="127.0.0.1",
        port=8000,
        reload=True,
        log_level="info"
    )


if __name__ == "__main__":
    sys.exit(main())
