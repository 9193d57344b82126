"""Interfaces to the outside world: signing keys, transaction broadcast and chain observation.

Failures of these collaborators raise `ExternalIOFailure`. They are retried here and never reach the dispute
engine, whose state only changes with the events observed on the chain.
"""

import logging
import time
from typing import Callable, Protocol

from tx_engine import Tx

from zkbisect.errors import ExternalIOFailure
from zkbisect.graph.templates import TransactionTemplate

logger = logging.getLogger(__name__)


class Signer(Protocol):
    """A key able to sign the messages of the templates it is a signer of."""

    @property
    def public_key(self) -> bytes: ...

    def sign(self, message: bytes) -> bytes:
        """Return the signature of `message`, in the format pushed by unlocking scripts."""
        ...


class Broadcaster(Protocol):
    def broadcast(self, tx: Tx) -> str:
        """Send `tx` to the network and return its id.

        Raises:
            ExternalIOFailure: If the transaction could not be sent.
        """
        ...


class ChainSource(Protocol):
    def current_height(self) -> int:
        """Return the height of the chain tip.

        Raises:
            ExternalIOFailure: If the chain could not be read.
        """
        ...

    def confirmations(self, txid: str) -> int:
        """Return the number of confirmations of `txid`, `0` if it is not mined.

        Raises:
            ExternalIOFailure: If the chain could not be read.
        """
        ...


def sign_template(template: TransactionTemplate, signers: list[Signer]) -> dict[tuple[int, bytes], bytes]:
    """Sign every input of `template` that one of `signers` is required to sign.

    Returns:
        The signatures, indexed by `(input_index, public_key)`. Requests of keys not in `signers` are skipped.
    """
    by_key = {signer.public_key: signer for signer in signers}
    signatures = {}
    for request in template.signing_requests():
        signer = by_key.get(request.signer)
        if signer is None:
            continue
        signatures[(request.input_index, request.signer)] = signer.sign(request.message)
    logger.debug("Signed %d inputs of %s", len(signatures), template.key)
    return signatures


def broadcast_with_retry(
    broadcaster: Broadcaster,
    tx: Tx,
    max_attempts: int = 5,
    base_delay: float = 1.0,
    max_delay: float = 60.0,
    sleep: Callable[[float], None] = time.sleep,
) -> str:
    """Broadcast `tx`, retrying with exponential backoff when the broadcaster fails.

    Args:
        broadcaster (Broadcaster): The broadcaster.
        tx (Tx): The transaction to send.
        max_attempts (int): The maximum number of attempts. Defaults to `5`.
        base_delay (float): The delay before the second attempt, in seconds. Defaults to `1.0`.
        max_delay (float): The maximum delay between two attempts, in seconds. Defaults to `60.0`.
        sleep (Callable[[float], None]): The function used to wait. Defaults to `time.sleep`.

    Returns:
        The id of the broadcast transaction.

    Raises:
        ExternalIOFailure: The failure of the last attempt, if every attempt failed.
    """
    if max_attempts < 1:
        msg = f"At least one attempt is required: max_attempts: {max_attempts}"
        raise ValueError(msg)

    attempt = 1
    while True:
        try:
            return broadcaster.broadcast(tx)
        except ExternalIOFailure as failure:
            if attempt >= max_attempts:
                logger.error("Broadcast of %s failed after %d attempts: %s", tx.id(), attempt, failure)
                raise
            delay = min(base_delay * 2 ** (attempt - 1), max_delay)
            logger.warning(
                "Broadcast of %s failed (attempt %d): %s; retrying in %.1fs", tx.id(), attempt, failure, delay
            )
            sleep(delay)
            attempt += 1
