import argparse
import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent / "src"))

from config import (
    find_config_path,
    get_config_value,
    get_index_dir,
    get_source_dirs,
    load_config,
)
from loaders import DEFAULT_EXTENSIONS
from pipelines import run_ingestion
from watcher import DEBOUNCE_SECONDS, STATUS_FILENAME, IngestionWatcher

logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)


def main():
    parser = argparse.ArgumentParser(
        description="Watch the source folders and rebuild the index on changes"
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to configuration file (default: config.toml in project root)",
    )

    args = parser.parse_args()

    config_path = find_config_path(args.config)
    config = load_config(config_path)

    watcher = IngestionWatcher(
        watch_dirs=list(get_source_dirs(config, config_path).values()),
        status_file=get_index_dir(config, config_path) / STATUS_FILENAME,
        run_ingestion=lambda: run_ingestion(config_path),
        extensions=get_config_value(config, "sources.extensions", DEFAULT_EXTENSIONS),
        debounce_seconds=get_config_value(
            config, "watcher.debounce_seconds", DEBOUNCE_SECONDS
        ),
    )
    watcher.start()
    return 0


if __name__ == "__main__":
    sys.exit(main())
