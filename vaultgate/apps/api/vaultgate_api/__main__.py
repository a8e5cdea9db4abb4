"""Run the gateway with uvicorn: python -m vaultgate_api"""

import uvicorn
from uvicorn.config import LOGGING_CONFIG

from vaultgate_api.config.env import get_port, json_logs_enabled


def main() -> None:
    uvicorn.run(
        "vaultgate_api.main:app",
        host="0.0.0.0",
        port=get_port(),
        # JSONFormatter owns the root logger; keep uvicorn from replacing it.
        log_config=None if json_logs_enabled() else LOGGING_CONFIG,
    )


if __name__ == "__main__":
    main()
