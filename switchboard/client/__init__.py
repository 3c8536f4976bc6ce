"""Switchboard API client.

Usage:
    from switchboard.client import SwitchboardClient

    async with SwitchboardClient("http://localhost:8000") as client:
        batch = await client.start_batch("operator", folder="/billing", recursive=True)
        detail = await client.get_batch(batch["batch_id"])
"""

from switchboard.client.client import SwitchboardClient, SwitchboardClientError

__all__ = ["SwitchboardClient", "SwitchboardClientError"]
