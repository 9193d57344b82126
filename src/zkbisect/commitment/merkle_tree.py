"""Merkle tree over boundary digests.

Nodes are `hash256d(left || right)`. Levels with an odd number of nodes duplicate their last node. The root of a
tree with a single leaf is the leaf itself.
"""

from tx_engine import hash256d


def merkle_levels(leaves: list[bytes]) -> list[list[bytes]]:
    """Return the levels of the tree, from the leaves to the root.

    Raises:
        ValueError: If `leaves` is empty.
    """
    if not leaves:
        msg = "Cannot build a Merkle tree without leaves"
        raise ValueError(msg)
    levels = [list(leaves)]
    while len(levels[-1]) > 1:
        level = levels[-1]
        if len(level) % 2 == 1:
            level = [*level, level[-1]]
        levels.append([hash256d(level[i] + level[i + 1]) for i in range(0, len(level), 2)])
    return levels


def merkle_root(leaves: list[bytes]) -> bytes:
    return merkle_levels(leaves)[-1][0]


def inclusion_proof(leaves: list[bytes], index: int) -> list[tuple[bytes, bool]]:
    """Return the Merkle path of `leaves[index]`.

    Returns:
        The list of `(sibling, is_sibling_left)`, from the leaves to the root.
    """
    if not 0 <= index < len(leaves):
        msg = f"Leaf index out of range: index: {index}, number of leaves: {len(leaves)}"
        raise ValueError(msg)
    proof = []
    for level in merkle_levels(leaves)[:-1]:
        if index % 2 == 1:
            proof.append((level[index - 1], True))
        else:
            sibling = level[index + 1] if index + 1 < len(level) else level[index]
            proof.append((sibling, False))
        index //= 2
    return proof


def verify_inclusion(root: bytes, leaf: bytes, proof: list[tuple[bytes, bool]]) -> bool:
    """Check that `proof` is a Merkle path from `leaf` to `root`."""
    node = leaf
    for sibling, is_sibling_left in proof:
        node = hash256d(sibling + node) if is_sibling_left else hash256d(node + sibling)
    return node == root
