"""
Run the MarkNotes API with uvicorn: `python -m marknotes`.

Host and port come from BACKEND_HOST / BACKEND_PORT (see config.py).
"""

import uvicorn

from marknotes.config import settings


def main() -> None:
    uvicorn.run(
        "marknotes.main:app",
        host=settings.backend_host,
        port=settings.backend_port,
        log_level=settings.log_level.lower(),
        reload=settings.environment == "development",
    )


if __name__ == "__main__":
    main()
