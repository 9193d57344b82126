"""Bitcoin scripts that serialize and hash boundary values on-chain."""

from tx_engine import Script

from zkbisect.commitment.commitment import encoded_length
from zkbisect.util.utility_scripts import nums_to_script, pick, roll


def serialize_values(bit_widths: list[int], is_rolled: bool = True) -> Script:
    """Serialize the top `len(bit_widths)` elements of the stack with the encoding of `encode_boundary`.

    Every element is converted with `OP_NUM2BIN` to `bit_width // 8 + 1` bytes (little-endian) and the results
    are concatenated, the deepest element first.

    Stack input:
        - stack:    [..., x_0, ..., x_{n-1}]
        - altstack: []

    Stack output:
        - stack:    [..., x_0, ..., x_{n-1}, encoding] if not is_rolled else [..., encoding]
        - altstack: []

    Args:
        bit_widths (list[int]): The bit width of `x_0, ..., x_{n-1}`.
        is_rolled (bool): If `True`, the elements are consumed. Defaults to `True`.

    Returns:
        The script computing the encoding. The empty sequence is encoded by the empty byte string.
    """
    n = len(bit_widths)
    if n == 0:
        return Script.parse_string("OP_0")
    moving_function = roll if is_rolled else pick

    out = Script()
    for ix, bit_width in enumerate(bit_widths):
        # x_ix sits below x_{ix+1}, ..., x_{n-1} and the partial encoding
        position = n - 1 if ix == 0 else n - ix
        out += moving_function(position=position, n_elements=1)
        out += nums_to_script([encoded_length(bit_width)])
        out += Script.parse_string("OP_NUM2BIN")
        if ix > 0:
            out += Script.parse_string("OP_CAT")
    return out


def hash_values(bit_widths: list[int], is_rolled: bool = True) -> Script:
    """Compute the digest `hash256d(encode_boundary(...))` of the top `len(bit_widths)` elements of the stack.

    Stack input:
        - stack:    [..., x_0, ..., x_{n-1}]
        - altstack: []

    Stack output:
        - stack:    [..., x_0, ..., x_{n-1}, digest] if not is_rolled else [..., digest]
        - altstack: []
    """
    return serialize_values(bit_widths, is_rolled) + Script.parse_string("OP_HASH256")


def verify_digest(bit_widths: list[int], digest: bytes, is_rolled: bool = True, is_equal_verify: bool = True) -> Script:
    """Check that the top `len(bit_widths)` elements of the stack open `digest`.

    Stack input:
        - stack:    [..., x_0, ..., x_{n-1}]
        - altstack: []

    Stack output:
        - stack:    [..., x_0, ..., x_{n-1}] if not is_rolled else [...], or fail if the opening is wrong
        - altstack: []
        or, if not is_equal_verify, the same with `1` (opening correct) or `0` (opening wrong) on top.
    """
    out = hash_values(bit_widths, is_rolled)
    out.append_pushdata(digest)
    out += Script.parse_string("OP_EQUALVERIFY" if is_equal_verify else "OP_EQUAL")
    return out


def disprove_script(
    chunk_script: Script,
    n_flags: int,
    entry_bit_widths: list[int],
    exit_bit_widths: list[int],
    entry_digest: bytes,
    exit_digest: bytes,
) -> Script:
    """Succeed if and only if `chunk_script` does not map a state opening `entry_digest` to one opening `exit_digest`.

    The script checks the opening of the entry state, runs `chunk_script` on it, and compares the digest of the
    result with `exit_digest`. A failure flagged by `chunk_script` counts as a mismatch.

    Stack input:
        - stack:    [q, x_0, ..., x_{n-1}] with `x_0, ..., x_{n-1}` the entry state
        - altstack: []

    Stack output:
        - stack:    [1] if the digests differ or a flag is `0`, [0] otherwise, fail if the entry state does not
            open `entry_digest`
        - altstack: []

    Args:
        chunk_script (Script): The program mapping `[q, entry state]` to the exit state, with `n_flags` flags left
            on the altstack.
        n_flags (int): The number of flags `chunk_script` leaves on the altstack.
        entry_bit_widths (list[int]): The bit widths of the entry state.
        exit_bit_widths (list[int]): The bit widths of the exit state.
        entry_digest (bytes): The committed digest of the entry state.
        exit_digest (bytes): The committed digest of the exit state.
    """
    out = verify_digest(entry_bit_widths, entry_digest, is_rolled=False)
    out += chunk_script
    out += hash_values(exit_bit_widths)
    out.append_pushdata(exit_digest)
    out += Script.parse_string("OP_EQUAL OP_NOT")
    for _ in range(n_flags):
        out += Script.parse_string("OP_FROMALTSTACK OP_NOT OP_BOOLOR")
    return out
