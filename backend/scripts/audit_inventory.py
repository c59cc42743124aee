# backend/scripts/audit_inventory.py
"""
Usage:
  # ensure DATABASE_URL and REDIS_URL env vars are set
  python backend/scripts/audit_inventory.py [--all]
This script will:
 - drain the inventory drift queue (failed releases recorded by cancellations)
 - compare quantity_sold with purchase items for the affected tickets
   (or every ticket with --all) and print any mismatch
Nothing is corrected: an operator decides how to fix each reported ticket.
Exit code is 1 when a discrepancy was found.
"""
import asyncio
import os
import sys

BACKEND_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from eventreg.db import AsyncSessionLocal  # noqa: E402
from eventreg.redis_tools import drain_inventory_drift  # noqa: E402
from eventreg.services.inventory import audit_inventory  # noqa: E402


async def audit(check_all: bool) -> int:
    drift = await drain_inventory_drift()
    for entry in drift:
        print(
            f"queued drift: ticket={entry['ticket_id']} quantity={entry['quantity']} "
            f"registration={entry['registration_id']}"
        )

    ticket_ids = None if check_all else sorted({entry["ticket_id"] for entry in drift})
    if ticket_ids == []:
        print("No queued drift. Use --all to audit every ticket.")
        return 0

    async with AsyncSessionLocal() as session:
        async with session.begin():
            discrepancies = await audit_inventory(session, ticket_ids)

    for d in discrepancies:
        print(f"ticket {d.ticket_id}: quantity_sold={d.quantity_sold} expected={d.expected}")
    print("Audit complete.", len(discrepancies), "discrepancy(ies) found.")
    return 1 if discrepancies else 0


if __name__ == "__main__":
    sys.exit(asyncio.run(audit("--all" in sys.argv[1:])))
