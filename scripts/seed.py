from __future__ import annotations

import argparse

from app.shopgate.db.seed import run_seed
from app.shopgate.db.session import SessionLocal


def main() -> int:
    parser = argparse.ArgumentParser(description="Seed the SHOPGATE database")
    parser.add_argument("--demo", action="store_true", help="Also create a demo owner, shop and worker")
    args = parser.parse_args()

    db = SessionLocal()
    try:
        run_seed(db, demo=args.demo)
    finally:
        db.close()
    print("seed complete")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
