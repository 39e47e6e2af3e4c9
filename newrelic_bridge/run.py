"""
Script to run the newrelic_bridge demo server.
"""

import uvicorn

from newrelic_bridge.settings import Settings


def main():
    """Run the server with uvicorn, configured from the environment."""
    settings = Settings()
    uvicorn.run(
        "newrelic_bridge.main:get_app",
        factory=True,
        host=settings.get_app_host(),
        port=settings.get_app_port(),
        reload=settings.get_app_reload(),
        log_level=settings.get_log_level().lower(),
    )


if __name__ == "__main__":
    main()
