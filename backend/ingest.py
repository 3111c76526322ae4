import argparse
import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent / "src"))

from config import find_config_path
from pipelines import run_ingestion

logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)


def main():
    parser = argparse.ArgumentParser(
        description="Build the grounding index from the handbook and example folders"
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to configuration file (default: config.toml in project root)",
    )

    args = parser.parse_args()

    try:
        config_path = find_config_path(args.config)
        results = run_ingestion(config_path)
        print("\n=== Ingestion Complete ===")
        print(f"Documents found: {results['documents']}")
        print(f"Documents failed: {len(results['failed_documents'])}")
        for doc_path in results["failed_documents"]:
            print(f"  - {doc_path}")
        print(
            f"Chunks created: {results['chunks']} "
            f"({results['handbook_chunks']} handbook, {results['example_chunks']} example)"
        )
        print(f"Embeddings generated: {results['embeddings']}")
        print(f"Run id: {results['run_id']}")
        return 0
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
