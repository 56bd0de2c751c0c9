from __future__ import annotations

import logging
import os
from dataclasses import replace
from pathlib import Path

import uvicorn

from todu.api.app import create_app
from todu.config import Settings, load_settings

ROOT_DIR = Path(__file__).resolve().parent.parent


def _anchor(path: Path) -> Path:
    return path if path.is_absolute() else ROOT_DIR / path


def resolve_paths(settings: Settings) -> Settings:
    """Relative DB_PATH / UPLOAD_DIR are taken from the repo root, not the cwd."""
    return replace(settings, db_path=_anchor(settings.db_path), upload_dir=_anchor(settings.upload_dir))


def main() -> None:
    pid = os.getpid()

    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - [PID:%(process)d] - %(message)s'
    )
    logger = logging.getLogger(__name__)

    settings = resolve_paths(load_settings())
    app = create_app(settings)

    logger.info("=" * 60)
    logger.info(f"Todu API starting - PID: {pid}, env: {settings.env}")
    logger.info(f"Listening on http://{settings.host}:{settings.port}")
    logger.info("=" * 60)

    try:
        uvicorn.run(app, host=settings.host, port=settings.port, log_config=None)
    except KeyboardInterrupt:
        logger.info(f"Server stopped by user - PID: {pid}")


if __name__ == "__main__":
    main()
