"""Drive the seller and buyer flow from Python against a running app.

Start ``examples/energy_app.py`` first, then::

    python examples/seller_session.py seller@example.com

The seller's account id is kept in ``~/.energytrade.json`` so a second run
resumes polling the same account after hosted onboarding.
"""

import asyncio
import logging
import sys

from flask_energytrade.client import FileAccountStore, SellerProfile, TradeClient, TradeSession


def show(status, transfers_active):
    due = ", ".join(status.requirements.currently_due) or "nothing"
    print(f"{status.id}: transfers={status.capability('transfers').value} due={due}")


async def main(email: str) -> None:
    async with TradeClient("http://localhost:5000") as client:
        session = TradeSession(client, FileAccountStore("~/.energytrade.json"), on_status=show)
        if await session.restore() is None:
            await session.create_seller(SellerProfile(email=email))

        print("Complete verification at:", await session.start_onboarding())
        await session.poller.wait()

        secret = await session.create_payment(kwh=1000)
        print("Payment intent client secret:", secret)
        await session.close()


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    asyncio.run(main(sys.argv[1] if len(sys.argv) > 1 else "seller@example.com"))
