# src/usm/api/__main__.py
from __future__ import annotations

import uvicorn

from usm.env import load_dotenv_if_present


def main() -> None:
    # Load .env early so USM_* vars exist before anything reads them.
    load_dotenv_if_present()

    # Import after dotenv load (prevents "config read before env" surprises)
    from usm.api.app import create_app
    from usm.runtime.token_config import load_token_config

    cfg = load_token_config()
    uvicorn.run(create_app(cfg=cfg), host=cfg.api_host, port=int(cfg.api_port), log_level=cfg.log_level.lower())


if __name__ == "__main__":
    main()
