"""
Inactive key finder

Lists the keys a wallet holds whose subjects have not been online for a
given number of days, oldest first.
"""

import asyncio
import time
from dataclasses import dataclass
from typing import Optional

from ftbot.services.friend_tech_api import FriendTechAPI


@dataclass
class InactiveKey:
    address: str
    quantity: int
    price_eth: float
    twitter_username: str
    twitter_name: str
    last_online: int  # unix ms


async def find_inactive_keys(
    api: FriendTechAPI,
    address: str,
    inactive_days: float,
    now_ms: Optional[int] = None,
    chunk_size: int = 25
) -> list[InactiveKey]:
    """
    Find held keys of users offline for at least `inactive_days`.

    Profiles are fetched `chunk_size` at a time. Subjects without a
    profile or without a known last-online time are left out.
    """
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    cutoff = now_ms - int(inactive_days * 24 * 60 * 60 * 1000)

    holdings = await api.get_token_holdings(address)
    subjects = list(holdings)

    inactive = []
    for start in range(0, len(subjects), chunk_size):
        chunk = subjects[start:start + chunk_size]
        users = await asyncio.gather(*(api.find_user(subject) for subject in chunk))

        for subject, user in zip(chunk, users):
            if user is None or not 0 < user.last_online < cutoff:
                continue
            inactive.append(InactiveKey(
                address=subject,
                quantity=holdings[subject].balance,
                price_eth=user.display_price_eth,
                twitter_username=user.twitter_username,
                twitter_name=user.twitter_name,
                last_online=user.last_online
            ))

    inactive.sort(key=lambda k: k.last_online)
    return inactive
