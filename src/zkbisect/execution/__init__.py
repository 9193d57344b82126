"""execution package.

Modules:
    - evaluator: Contains the ChunkExecutor class, which runs single chunks from boundary states, both with the
        reference arithmetic and in the script engine.
"""
