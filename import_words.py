#!/usr/bin/env python3
"""Import the bundled word dataset into the database.

Usage: python import_words.py [--json path]
"""
import sys, os, argparse
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))
from learn_turkic import db, stats
from learn_turkic.exceptions import DatasetError

def main() -> None:
    parser = argparse.ArgumentParser(description="Import words JSON")
    parser.add_argument("--json", default="data/words.json")
    args = parser.parse_args()

    if not os.path.exists(args.json):
        print(f"❌ Dataset not found: {args.json}"); sys.exit(1)

    db.init_db()
    try:
        count = db.import_words(args.json)
    except DatasetError as e:
        print(f"❌ {e.message}"); sys.exit(1)
    progress = stats.level_progress(db.all_words(), db.all_records())
    print(f"\n📊 Imported {count} new words")
    for level, (learned, total) in progress.items():
        print(f"   {level}: {learned}/{total} learned")

if __name__ == "__main__":
    main()
