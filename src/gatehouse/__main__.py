"""Gatehouse entrypoint.

Run with:
  python -m gatehouse
"""

import uvicorn

from gatehouse.config import Settings
from gatehouse.errors import ConfigError

def main() -> None:
    try:
        settings = Settings.from_env()
    except ConfigError as e:
        raise SystemExit(f"Configuration error: {e}")
    uvicorn.run(
        "gatehouse.app:create_app",
        factory=True,
        host=settings.host,
        port=settings.port,
        reload=settings.reload,
    )

if __name__ == "__main__":
    main()
