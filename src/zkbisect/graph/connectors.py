"""Locking scripts of the outputs of the transaction graph."""

from typing import Mapping

from tx_engine import Script

from zkbisect.commitment.scripts import verify_digest
from zkbisect.commitment.trace import TraceCommitment
from zkbisect.compiler.packer import Program
from zkbisect.util.utility_scripts import nums_to_script, pick


def pay_to_public_key(public_key: bytes) -> Script:
    """Return `<public_key> OP_CHECKSIG`."""
    out = Script()
    out.append_pushdata(public_key)
    out += Script.parse_string("OP_CHECKSIG")
    return out


def committee_multisig(public_keys: list[bytes]) -> Script:
    """Return the n-of-n multisignature of the committee.

    Stack input:
        - stack:    [..., OP_0, sig_0, ..., sig_{n-1}]
        - altstack: []

    Stack output:
        - stack:    [..., 1] if every member signed, fail otherwise
        - altstack: []
    """
    if not public_keys:
        msg = "The committee needs at least one member"
        raise ValueError(msg)
    out = nums_to_script([len(public_keys)])
    for public_key in public_keys:
        out.append_pushdata(public_key)
    out += nums_to_script([len(public_keys)])
    out += Script.parse_string("OP_CHECKMULTISIG")
    return out


def connector(branch: Script, public_key: bytes | None, committee: list[bytes]) -> Script:
    """Return a locking script with a main branch and a committee branch.

    The main branch runs `branch` and, if `public_key` is given, checks a signature for it. The committee branch
    is spent by the transactions the committee pre-signed, such as the timeouts, whose relative time-lock is
    carried by the sequence of the spending input.

    Stack input:
        - stack:    [sig, ..., branch inputs, 1] (main branch) or [OP_0, sigs_committee, 0] (committee branch)
        - altstack: []

    Stack output:
        - stack:    [1] on success, fail otherwise
        - altstack: []
    """
    out = Script.parse_string("OP_IF")
    out += branch
    if public_key is not None:
        out += pay_to_public_key(public_key)
    out += Script.parse_string("OP_ELSE")
    out += committee_multisig(committee)
    out += Script.parse_string("OP_ENDIF")
    return out


def data_output(data: bytes) -> Script:
    """Return the unspendable `OP_FALSE OP_RETURN <data>`."""
    out = Script.parse_string("OP_FALSE OP_RETURN")
    out.append_pushdata(data)
    return out


def verify_public_inputs(wires: tuple[int, ...], public_inputs: Mapping[int, int]) -> Script:
    """Check that the public inputs among `wires` carry their agreed values.

    Stack input:
        - stack:    [..., x_0, ..., x_{n-1}] with `x_i` the value of `wires[i]`
        - altstack: []

    Stack output:
        - stack:    [..., x_0, ..., x_{n-1}] or fail
        - altstack: []
    """
    out = Script()
    for ix, wire in enumerate(wires):
        if wire in public_inputs:
            out += pick(position=len(wires) - 1 - ix, n_elements=1)
            out += nums_to_script([public_inputs[wire]])
            out += Script.parse_string("OP_NUMEQUALVERIFY")
    return out


def reveal_branch(
    program: Program, commitment: TraceCommitment, boundaries: list[int], public_inputs: Mapping[int, int]
) -> Script:
    """Check that the revealed boundary states open their digests, and that boundary 0 carries `public_inputs`.

    Stack input:
        - stack:    [..., state_{b_0}, ..., state_{b_{k-1}}] with every state pushed in ascending wire order
        - altstack: []

    Stack output:
        - stack:    [...] or fail
        - altstack: []
    """
    out = Script()
    for boundary in sorted(boundaries, reverse=True):
        if boundary == 0:
            out += verify_public_inputs(program.live_wires(0), public_inputs)
        out += verify_digest(list(program.bit_widths(boundary)), commitment.digest(boundary))
    return out


def disprove_branch(program: Program, commitment: TraceCommitment, index: int) -> Script:
    """Succeed if and only if chunk `index` does not map the committed state of boundary `index` to the next one.

    The branch is the program of `Program.disprove_chunk`: it checks that the revealed state opens the digest of
    boundary `index`, executes the chunk on it, and compares the digest of the result with the committed digest of
    boundary `index + 1`. An inverse of zero or a non-boolean selector in the chunk also makes the branch succeed.

    Stack input:
        - stack:    [q, state_index] with the state pushed in ascending wire order
        - altstack: []

    Stack output:
        - stack:    [1] if the committed digest is wrong or the chunk fails, [0] or fail otherwise
        - altstack: []
    """
    return program.disprove_chunk(index, commitment.digest(index), commitment.digest(index + 1)).script
