"""Record identifier derivation."""

from __future__ import annotations

import hashlib
import secrets
from typing import Optional


def derive_record_id(
    patient_id: str,
    creator: str,
    nonce: int,
    timestamp_ns: int,
    entropy: Optional[bytes] = None,
) -> str:
    """Hash the creation inputs into a ``0x``-prefixed 32-byte hex id.

    ``nonce`` is unique per creation; ``entropy`` keeps future ids
    unpredictable to callers who know the other inputs.
    """
    if entropy is None:
        entropy = secrets.token_bytes(16)
    h = hashlib.sha256()
    for part in (patient_id.encode("utf-8"), creator.encode("utf-8")):
        h.update(len(part).to_bytes(4, "big"))
        h.update(part)
    h.update(nonce.to_bytes(16, "big"))
    h.update(timestamp_ns.to_bytes(16, "big"))
    h.update(entropy)
    return "0x" + h.hexdigest()
