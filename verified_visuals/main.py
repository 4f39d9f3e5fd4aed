#!/usr/bin/env python3
"""
Verified Visuals API entrypoint (``uvicorn verified_visuals.main:app``).
"""

import os

import uvicorn

from verified_visuals.core.app import create_app

app = create_app()


def main():
    """Main entry point"""
    uvicorn.run(
        "verified_visuals.main:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
        reload=os.getenv("ENVIRONMENT", "development") == "development",
        log_config=None,
    )


if __name__ == "__main__":
    main()
