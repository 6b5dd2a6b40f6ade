from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Optional

SUPPORTED_EVENT_TYPES = {
    "expense",
    "income",
    "transfer",
    "savings_contribution",
    "savings_withdrawal",
}


@dataclass(frozen=True)
class Posting:
    amount_idr: int
    wallet_id: Optional[int] = None
    savings_bucket_id: Optional[int] = None


def normalize_event_type(value: str) -> str:
    normalized = value.strip().lower().replace("-", "_")
    if normalized not in SUPPORTED_EVENT_TYPES:
        raise ValueError("Invalid transaction type.")
    return normalized


def build_postings(
    event_type: str,
    amount_idr: int,
    wallet_id: Optional[int] = None,
    to_wallet_id: Optional[int] = None,
    savings_bucket_id: Optional[int] = None,
) -> List[Posting]:
    normalized = normalize_event_type(event_type)
    if isinstance(amount_idr, bool) or not isinstance(amount_idr, int):
        raise ValueError("Amount must be a whole number of rupiah.")
    if amount_idr <= 0:
        raise ValueError("Amount must be greater than zero.")
    if wallet_id is None:
        raise ValueError("A wallet is required.")

    if normalized == "expense":
        return [Posting(amount_idr=-amount_idr, wallet_id=wallet_id)]
    if normalized == "income":
        return [Posting(amount_idr=amount_idr, wallet_id=wallet_id)]
    if normalized == "transfer":
        if to_wallet_id is None:
            raise ValueError("Transfer requires a destination wallet.")
        if to_wallet_id == wallet_id:
            raise ValueError("Cannot transfer to the same wallet.")
        return [
            Posting(amount_idr=-amount_idr, wallet_id=wallet_id),
            Posting(amount_idr=amount_idr, wallet_id=to_wallet_id),
        ]

    if savings_bucket_id is None:
        raise ValueError("Savings transactions require a savings bucket.")
    sign = 1 if normalized == "savings_contribution" else -1
    return [
        Posting(amount_idr=-sign * amount_idr, wallet_id=wallet_id),
        Posting(amount_idr=sign * amount_idr, savings_bucket_id=savings_bucket_id),
    ]


@dataclass(frozen=True)
class PostingSummary:
    amount_idr: int
    wallet_id: Optional[int]
    to_wallet_id: Optional[int]
    savings_bucket_id: Optional[int]


def summarize_postings(event_type: str, postings: Iterable[Posting]) -> PostingSummary:
    normalized = normalize_event_type(event_type)
    postings = list(postings)
    wallet_postings = [posting for posting in postings if posting.wallet_id is not None]
    bucket_postings = [posting for posting in postings if posting.savings_bucket_id is not None]
    amount = max((abs(posting.amount_idr) for posting in postings), default=0)

    wallet_id = wallet_postings[0].wallet_id if wallet_postings else None
    to_wallet_id = None
    if normalized == "transfer":
        wallet_id = next((p.wallet_id for p in wallet_postings if p.amount_idr < 0), None)
        to_wallet_id = next((p.wallet_id for p in wallet_postings if p.amount_idr > 0), None)

    return PostingSummary(
        amount_idr=amount,
        wallet_id=wallet_id,
        to_wallet_id=to_wallet_id,
        savings_bucket_id=bucket_postings[0].savings_bucket_id if bucket_postings else None,
    )
