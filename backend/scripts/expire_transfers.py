import argparse
import asyncio
import json
import sys
from pathlib import Path

"""
Run one pass of the transfer expiry job and print the summary as JSON.

For deployments that schedule the job externally (cron, k8s CronJob) and set
EXPIRY_JOB_ENABLED=false on the API. Exits 1 when any transfer failed.

Run:
- inside backend/: `python scripts/expire_transfers.py`
- from repo root: `python backend/scripts/expire_transfers.py --hours 24`
"""

# Allow running from repo root by ensuring `backend/` is on sys.path
BACKEND_DIR = Path(__file__).resolve().parents[1]
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from core.logging import setup_logging  # noqa: E402
from db.database import async_session_maker, import_all_models  # noqa: E402
from services.transfers import expire_overdue_transfers  # noqa: E402


def _parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Expire overdue bar-to-bar transfers once.")
    parser.add_argument("--hours", type=int, default=None, help="override TRANSFER_EXPIRY_HOURS")
    return parser.parse_args(argv)


async def main(argv=None) -> int:
    args = _parse_args(argv)
    setup_logging()
    import_all_models()
    result = await expire_overdue_transfers(async_session_maker, timeout_hours=args.hours)
    print(json.dumps(result.to_dict(), indent=2))
    return 1 if result.failures else 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
