"""graph package.

This package provides the pre-signed transaction graph enforcing the outcome of a dispute.

Modules:
    - connectors: Locking scripts of the outputs of the graph.
    - templates: Contains the TransactionTemplate class, an unsigned transaction and its signing requests.
    - graph: Contains the TransactionGraph class.
"""
