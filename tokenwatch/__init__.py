"""
tokenwatch - watches a node's block stream for newly deployed ERC-20 tokens.

Every contract-creation transaction is followed up after a verification grace
period: the contract is probed for name/symbol/totalSupply/decimals and its
verified source is searched for project website links.
"""

__version__ = "1.0.0"
