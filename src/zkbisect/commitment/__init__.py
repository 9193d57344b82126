"""commitment package.

Modules:
    - commitment: Encoding and digests of boundary states.
    - merkle_tree: Merkle tree over the boundary digests.
    - trace: Contains the ExecutionTrace and TraceCommitment classes.
    - scripts: Scripts recomputing boundary digests on-chain.
"""
