"""Process entrypoint for the pixel service.

- Loads configuration from environment.
- Configures logging.
- Opens the DuckDB event log (creating its directory on first run).
- Serves the FastAPI application with uvicorn.

Failing to create or open the database file is fatal here; everything after
start-up reports storage trouble per request instead.
"""

from __future__ import annotations

import logging

import uvicorn

from config import Config, load_config
from eventlog import DuckDBEventStore
from webserver import create_app

logger = logging.getLogger(__name__)


def open_store(config: Config) -> DuckDBEventStore:
    """Open the event log described by `config.store`."""
    db_path = config.store.db_path
    db_path.parent.mkdir(parents=True, exist_ok=True)
    return DuckDBEventStore(
        path=db_path,
        write_timeout=config.store.write_timeout,
        read_timeout=config.store.read_timeout,
        max_concurrent_reads=config.store.max_concurrent_reads,
    )


def main() -> None:
    """CLI entrypoint for `python src/main.py` / the `pageview-pixel` script."""
    cfg = load_config()
    logging.basicConfig(
        level=cfg.server.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    store = open_store(cfg)
    app = create_app(cfg, store)

    logger.info("Listening on %s:%d", cfg.server.host, cfg.server.port)
    uvicorn.run(
        app,
        host=cfg.server.host,
        port=cfg.server.port,
        log_level=cfg.server.log_level.lower(),
        access_log=cfg.server.access_log,
    )


if __name__ == "__main__":
    main()
