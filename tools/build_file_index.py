#!/usr/bin/env python3
"""Write files.json for dataset folders so the gateway serves a fixed listing."""
import argparse
import sys
from pathlib import Path

from rich.console import Console
from rich.table import Table

# project root
sys.path.append(str(Path(__file__).resolve().parents[1]))
from apps.common.settings import load_settings
from services.ingestion.records import FileSystemRecordRepository
from services.review.errors import ListingUnavailable

console = Console()


def main() -> int:
    ap = argparse.ArgumentParser(description=__doc__)
    ap.add_argument("datasets", nargs="*", help="Datasets to index (default: all configured).")
    ap.add_argument("--config", default=None, help="Config YAML (default: config/app.yaml).")
    ap.add_argument("--data-dir", default=None, help="Override data_dir from config.")
    args = ap.parse_args()

    settings = load_settings(args.config)
    data_dir = Path(args.data_dir) if args.data_dir else settings.data_dir
    repo = FileSystemRecordRepository(str(data_dir))
    names = args.datasets or settings.dataset_names

    table = Table(title=f"File index ({data_dir})")
    table.add_column("Dataset")
    table.add_column("Records", justify="right")
    table.add_column("Index")

    failures = 0
    for name in names:
        try:
            out = repo.write_file_index(name)
        except ListingUnavailable as e:
            failures += 1
            table.add_row(name, "-", f"[red]{e.describe()}[/red]")
            continue
        count = len(repo.list_records_sync(name))
        table.add_row(name, str(count), str(out))

    console.print(table)
    return 1 if failures else 0


if __name__ == "__main__":
    raise SystemExit(main())
