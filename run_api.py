#!/usr/bin/env python3
"""
Run the PageWatch control API, with the refresh scheduler in-process.
"""

import argparse
import sys
from pathlib import Path

import uvicorn

# Add project root to Python path
project_root = Path(__file__).parent
sys.path.insert(0, str(project_root))

from api.config import config
from utilities.config import config as watcher_config
from utilities.logger import setup_logging


def main(argv=None):
    parser = argparse.ArgumentParser(description="Serve the PageWatch control API.")
    parser.add_argument("--host", default=config.host, help=f"bind address (default {config.host})")
    parser.add_argument("--port", type=int, default=config.port, help=f"bind port (default {config.port})")
    args = parser.parse_args(argv)

    setup_logging(
        log_level=watcher_config.log_level,
        log_format=watcher_config.log_format,
        log_file=watcher_config.get_log_file_path(),
        debug=watcher_config.debug
    )

    # Only one process may own the state file, so no workers.
    uvicorn.run(
        "api.main:app",
        host=args.host,
        port=args.port,
        reload=config.reload,
        log_level=watcher_config.log_level.lower(),
        log_config=None,
        access_log=config.access_log
    )


if __name__ == "__main__":
    main()
