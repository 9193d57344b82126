"""compiler package.

This package provides the compilation of circuits into chunks of Bitcoin Script.

Modules:
    - folding: Constant folding and dead operation removal.
    - chunk_compiler: Contains the ChunkCompiler class, which lowers a run of operations into a script.
    - packer: Contains the Packer class, which partitions a circuit into chunks fitting the ceilings of the chain,
        and the Program class.
"""
