"""Transaction templates: unsigned transactions and what is needed to complete them."""

from dataclasses import dataclass, field
from enum import Enum

from tx_engine import SIGHASH, Script, Tx, TxIn, TxOut, sig_hash

# Sequence of the inputs without relative time-lock
FINAL_SEQUENCE = 0xFFFFFFFF
TX_VERSION = 2


class Branch(Enum):
    """Which branch of a connector an input spends."""

    MAIN = "main"
    COMMITTEE = "committee"
    EXTERNAL = "external"


@dataclass(frozen=True)
class Outpoint:
    """An output created outside the graph, used to fund it.

    Attributes:
        txid (str): The id of the transaction, as a hexadecimal string.
        index (int): The index of the output.
        amount (int): The amount of the output, in satoshis.
        locking_script (Script): The locking script of the output.
    """

    txid: str
    index: int
    amount: int
    locking_script: Script = field(default_factory=Script)


@dataclass(frozen=True)
class TemplateInput:
    """An input of a template.

    Attributes:
        predecessor (str): The key of the template creating the spent output, or `"external"`.
        output_index (int): The index of the spent output.
        amount (int): The amount of the spent output.
        locking_script (Script): The locking script of the spent output.
        branch (Branch): The branch of the locking script spent.
        signers (tuple[bytes, ...]): The public keys that must sign the input.
        sequence (int): The sequence of the input, which carries its relative time-lock.
        witness (tuple[str, ...]): Description of the data, other than signatures, the unlocking script pushes.
        external_txid (str | None): The id of the spent transaction when `predecessor` is `"external"`.
    """

    predecessor: str
    output_index: int
    amount: int
    locking_script: Script
    branch: Branch
    signers: tuple[bytes, ...]
    sequence: int = FINAL_SEQUENCE
    witness: tuple[str, ...] = ()
    external_txid: str | None = None

    @property
    def relative_timelock(self) -> int | None:
        return None if self.sequence == FINAL_SEQUENCE else self.sequence


@dataclass(frozen=True)
class SigningRequest:
    """A message a signer must sign for one input of a template."""

    template: str
    input_index: int
    signer: bytes
    message: bytes


@dataclass(frozen=True)
class TransactionTemplate:
    """An unsigned transaction of the graph.

    Attributes:
        key (str): The key of the template in the graph.
        tx (Tx): The unsigned transaction.
        inputs (tuple[TemplateInput, ...]): The description of every input of `tx`.
    """

    key: str
    tx: Tx
    inputs: tuple[TemplateInput, ...]

    @property
    def txid(self) -> str:
        return self.tx.id()

    @property
    def outputs(self) -> list[TxOut]:
        return self.tx.tx_outs

    def sighash(self, input_index: int) -> bytes:
        """Return the message signed for `input_index` (`SIGHASH.ALL_FORKID`)."""
        spent = self.inputs[input_index]
        return sig_hash(self.tx, input_index, spent.locking_script, spent.amount, SIGHASH.ALL_FORKID)

    def signing_requests(self) -> list[SigningRequest]:
        return [
            SigningRequest(template=self.key, input_index=ix, signer=signer, message=self.sighash(ix))
            for ix, spent in enumerate(self.inputs)
            for signer in spent.signers
        ]

    def required_witness(self) -> dict[int, tuple[str, ...]]:
        """Return the witness data required by every input that needs some."""
        return {ix: spent.witness for ix, spent in enumerate(self.inputs) if spent.witness}


def build_template(
    key: str,
    inputs: list[TemplateInput],
    prev_txids: list[str],
    outputs: list[tuple[int | None, Script]],
    fee: int,
) -> TransactionTemplate:
    """Build an unsigned transaction template.

    Args:
        key (str): The key of the template.
        inputs (list[TemplateInput]): The inputs.
        prev_txids (list[str]): The id of the transaction spent by every input.
        outputs (list[tuple[int | None, Script]]): The amount and locking script of every output. Exactly one
            amount may be `None`: that output receives the value of the inputs minus the fee and the other outputs.
        fee (int): The fee paid by the transaction.

    Raises:
        ValueError: If the inputs do not cover the outputs and the fee.
    """
    total = sum(spent.amount for spent in inputs)
    explicit = sum(amount for amount, _ in outputs if amount is not None)
    remainder = total - fee - explicit
    if remainder < 0 or (remainder > 0 and all(amount is not None for amount, _ in outputs)):
        msg = f"Inputs of {key} do not balance: inputs: {total}, outputs: {explicit}, fee: {fee}"
        raise ValueError(msg)

    tx_ins = [
        TxIn(prev_tx=txid, prev_index=spent.output_index, script=Script(), sequence=spent.sequence)
        for spent, txid in zip(inputs, prev_txids)
    ]
    tx_outs = [
        TxOut(amount=remainder if amount is None else amount, script_pubkey=locking_script)
        for amount, locking_script in outputs
    ]
    tx = Tx(version=TX_VERSION, tx_ins=tx_ins, tx_outs=tx_outs, locktime=0)
    return TransactionTemplate(key=key, tx=tx, inputs=tuple(inputs))
