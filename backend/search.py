import argparse
import json
import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent / "src"))

from config import find_config_path
from errors import ConfigurationError, IndexCorruptionError, IndexNotFoundError
from pipelines import get_retrieval_service

logging.basicConfig(
    level=logging.WARNING, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)


def main():
    parser = argparse.ArgumentParser(
        description="Search the grounding index for handbook and example passages"
    )
    parser.add_argument("query", nargs="?", help="Free-text query")
    parser.add_argument(
        "-k", type=int, default=None, help="Results per folder type (clamped to max_k)"
    )
    parser.add_argument(
        "--status", action="store_true", help="Print index readiness and exit"
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to configuration file (default: config.toml in project root)",
    )

    args = parser.parse_args()

    try:
        service = get_retrieval_service(find_config_path(args.config))
        if args.status or not args.query:
            status = service.status()
            print(json.dumps(status, indent=2))
            return 0 if status["status"] == "ready" else 1

        response = service.query(args.query, args.k)
        print(response.model_dump_json(by_alias=True, indent=2))
        return 0
    except (ConfigurationError, IndexNotFoundError, IndexCorruptionError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
