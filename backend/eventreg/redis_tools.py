# backend/eventreg/redis_tools.py
import json
import os
import logging

try:
    import redis.asyncio as redis_client
except Exception as e:
    logging.error("Failed to import redis.asyncio: %s", e)
    raise

REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379/0")

# an empty REDIS_URL disables the drift queue entirely
redis = redis_client.from_url(REDIS_URL, encoding="utf-8", decode_responses=True) if REDIS_URL else None

DRIFT_KEY = "inventory:drift"


async def record_inventory_drift(ticket_id: int, quantity: int, registration_id: int) -> None:
    """
    Queue a ticket whose release failed so the inventory audit can pick it up.
    Best-effort: errors are logged and swallowed.
    """
    if redis is None:
        logging.warning(
            "Inventory drift not queued (redis disabled): ticket=%s quantity=%s registration=%s",
            ticket_id, quantity, registration_id,
        )
        return
    entry = json.dumps({"ticket_id": ticket_id, "quantity": quantity, "registration_id": registration_id})
    try:
        await redis.rpush(DRIFT_KEY, entry)
    except Exception as exc:
        logging.exception("Redis error in record_inventory_drift: %s", exc)


async def drain_inventory_drift(limit: int = 1000) -> list[dict]:
    """
    Pop up to `limit` queued drift entries (oldest first).
    Returns an empty list when redis is disabled or errored.
    """
    if redis is None:
        return []
    entries: list[dict] = []
    try:
        for _ in range(limit):
            raw = await redis.lpop(DRIFT_KEY)
            if raw is None:
                break
            entries.append(json.loads(raw))
    except Exception as exc:
        logging.exception("Redis error in drain_inventory_drift: %s", exc)
    return entries
