import os

import uvicorn

from app.core.app_factory import create_app

app = create_app()


def run() -> None:
    """Serve the API with uvicorn (PORT defaults to 8080)."""
    uvicorn.run(
        "app.main:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8080")),
    )


if __name__ == "__main__":
    run()
